# Part of Websvc, see LICENSE file for full copyright and licensing details.

""" JSON response converters. The response document is
``{"response": <converted result>}``.
"""
import json

from websvc.tools import json_default
from . import ARRAY, COLLECTION_TAGS, FINAL, SCALAR, Converter

FORMAT = 'json'
MIMETYPE = 'application/json'


def dumps(value):
    return json.dumps(value, default=json_default, ensure_ascii=False)


class EntityJsonConverter(Converter):
    def convert(self, value, chain):
        return dumps(value.to_filtered_map())


class EntityListJsonConverter(Converter):
    def convert(self, value, chain):
        return '[%s]' % ', '.join('%s' % (chain.convert_value(item),) for item in value)


class ArrayJsonConverter(Converter):
    """ Builtin collections, items are converted through the chain so that
    entities nested in a list or a dict keep to their exposed fields.
    """
    def convert(self, value, chain):
        if isinstance(value, dict):
            return '{%s}' % ', '.join(
                '%s: %s' % (dumps(str(key)), chain.convert_value(item))
                for key, item in value.items()
            )
        if isinstance(value, (set, frozenset)):
            value = sorted(value, key=str)
        return '[%s]' % ', '.join('%s' % (chain.convert_value(item),) for item in value)


class ScalarJsonConverter(Converter):
    def convert(self, value, chain):
        return dumps(value)


class FinalJsonConverter(Converter):
    # unconverted values are written with their ``str()``
    def convert(self, value, chain):
        return '{"response": %s}' % (value,)


def converters():
    array = ArrayJsonConverter()
    table = {
        'Entity': EntityJsonConverter(),
        'EntityList': EntityListJsonConverter(),
        ARRAY: array,
        SCALAR: ScalarJsonConverter(),
        FINAL: FinalJsonConverter(),
    }
    table.update(dict.fromkeys(COLLECTION_TAGS, array))
    return table
