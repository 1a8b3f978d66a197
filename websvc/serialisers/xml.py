# Part of Websvc, see LICENSE file for full copyright and licensing details.

""" XML response converters.

The response document is ``<response>`` holding the converted result.
An entity is written as one element per exposed field, list items are
wrapped in ``<item>`` and dictionary values in an element named after
their key:

.. code-block:: xml

    <?xml version="1.0" encoding="UTF-8"?>
    <response><item><ID>1</ID><Title>Spanner</Title></item></response>
"""
import re

import markupsafe
from lxml import etree

from websvc.models import Entity
from websvc.tools import json_default
from . import ARRAY, COLLECTION_TAGS, FINAL, SCALAR, Converter

FORMAT = 'xml'
MIMETYPE = 'application/xml'

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'

_tag_name = re.compile(r'^[A-Za-z_][\w.-]*$')
# characters outside the XML 1.0 Char production
_invalid_chars = re.compile(r"[^\x09\x0A\x0D\x20-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]")


def to_text(value):
    """ Text of a scalar, without the characters XML cannot carry. """
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (int, float)):
        return str(value)
    if not isinstance(value, str):
        value = str(json_default(value))
    return _invalid_chars.sub('', value)


def append_value(parent, name, value):
    """ Append ``value`` to the lxml element ``parent`` as a ``name``
    element.
    """
    if _tag_name.match(name):
        node = etree.SubElement(parent, name)
    else:
        node = etree.SubElement(parent, 'item', key=to_text(name))
    if isinstance(value, Entity):
        for field, field_value in value.to_filtered_map().items():
            append_value(node, field, field_value)
    elif isinstance(value, dict):
        for key, item in value.items():
            append_value(node, str(key), item)
    elif isinstance(value, (list, tuple, set, frozenset)):
        for item in value:
            append_value(node, 'item', item)
    else:
        node.text = to_text(value)
    return node


def wrap(name, fragment):
    if _tag_name.match(name):
        return '<%s>%s</%s>' % (name, fragment, name)
    return '<item key="%s">%s</item>' % (markupsafe.escape(to_text(name)), fragment)


class EntityXmlConverter(Converter):
    def convert(self, value, chain):
        item = etree.Element('item')
        for field, field_value in value.to_filtered_map().items():
            append_value(item, field, field_value)
        return ''.join(etree.tostring(node, encoding='unicode') for node in item)


class EntityListXmlConverter(Converter):
    def convert(self, value, chain):
        return ''.join(wrap('item', chain.convert_value(item)) for item in value)


class ArrayXmlConverter(Converter):
    def convert(self, value, chain):
        if isinstance(value, dict):
            return ''.join(wrap(str(key), chain.convert_value(item)) for key, item in value.items())
        if isinstance(value, (set, frozenset)):
            value = sorted(value, key=str)
        return ''.join(wrap('item', chain.convert_value(item)) for item in value)


class ScalarXmlConverter(Converter):
    def convert(self, value, chain):
        return str(markupsafe.escape(to_text(value)))


class FinalXmlConverter(Converter):
    def convert(self, value, chain):
        return '%s<response>%s</response>' % (XML_HEADER, value)


def converters():
    array = ArrayXmlConverter()
    table = {
        'Entity': EntityXmlConverter(),
        'EntityList': EntityListXmlConverter(),
        ARRAY: array,
        SCALAR: ScalarXmlConverter(),
        FINAL: FinalXmlConverter(),
    }
    table.update(dict.fromkeys(COLLECTION_TAGS, array))
    return table
