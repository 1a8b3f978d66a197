# Part of Websvc, see LICENSE file for full copyright and licensing details.

""" Response conversion.

A service method returns plain Python values; before being sent they go
through the converter table of the requested format. Values are looked up
by type tag:

* ``ScalarItem`` for strings, numbers, booleans, dates and ``None``;
* ``Array`` for the builtin collections;
* the class name for everything else, then the names of its ancestors.

Values nothing matches are passed on unchanged. The ``FinalConverter``
entry then wraps the converted fragment into the response document.
"""
from __future__ import annotations

import logging
import typing
from abc import ABC, abstractmethod

from websvc.models import Kind, MetaEntity, kind_of
from websvc.tools import ReadonlyDict, frozendict, unique

_logger = logging.getLogger(__name__)

FINAL = 'FinalConverter'
ARRAY = 'Array'
SCALAR = 'ScalarItem'
# subclasses of the builtin collections reach the Array converter through
# these ancestor tags
COLLECTION_TAGS = ('dict', 'list', 'tuple', 'set', 'frozenset')


def type_tag(value) -> str:
    kind = kind_of(value)
    if kind is Kind.SCALAR:
        return SCALAR
    if kind is Kind.COLLECTION:
        return ARRAY
    return type(value).__name__


def ancestor_tags(cls) -> tuple[str, ...]:
    """ Names of the ancestors of ``cls``, nearest first. """
    return tuple(unique(klass.__name__ for klass in cls.__mro__[1:]))


class Converter(ABC):
    """ Converts one kind of value into a fragment of the response. """

    @abstractmethod
    def convert(self, value, chain: ResponseConverter) -> str:
        """ Return the fragment for ``value``. Nested values are converted
        with ``chain.convert_value``.
        """


class ConverterTable(ReadonlyDict):
    """ The converters of one response format, keyed by type tag.

    The ancestor tags of the given entity classes are computed once, when
    the table is built; the other classes have theirs computed at lookup.
    """

    def __init__(self, format, converters, mimetype='text/plain', types=()):
        if FINAL not in converters:
            raise ValueError("Converter table %r lacks a %s" % (format, FINAL))
        super().__init__(converters)
        self.format = format
        self.mimetype = mimetype
        self.ancestry = frozendict({cls: ancestor_tags(cls) for cls in types})

    def ancestors(self, cls):
        tags = self.ancestry.get(cls)
        if tags is None:
            tags = ancestor_tags(cls)
        return tags

    def lookup(self, value) -> Converter | None:
        tag = type_tag(value)
        if tag in self:
            return self[tag]
        if tag in (SCALAR, ARRAY):
            return None
        for ancestor in self.ancestors(type(value)):
            if ancestor in self:
                return self[ancestor]
        return None


class ResponseConverter:
    """ Apply a :class:`ConverterTable` to a method result. """

    def __init__(self, table: ConverterTable):
        self.table = table

    @property
    def format(self):
        return self.table.format

    @property
    def mimetype(self):
        return self.table.mimetype

    def convert_value(self, value) -> typing.Any:
        """ Convert ``value`` without the final wrapping. Values no
        converter matches are returned unchanged.
        """
        converter = self.table.lookup(value)
        if converter is None:
            _logger.debug("No %s converter for %s", self.format, type(value).__name__)
            return value
        return converter.convert(value, self)

    def convert(self, value) -> str:
        """ Convert a method result into the response body. """
        return self.table[FINAL].convert(self.convert_value(value), self)


def default_converters(types=None) -> frozendict:
    """ Build the converters of the supported formats, keyed by format name.

    :param types: the entity classes whose ancestry is precomputed,
        the registered entity classes by default
    """
    from . import json, xml
    if types is None:
        types = list(MetaEntity.registry.values())
    return frozendict({
        module.FORMAT: ResponseConverter(ConverterTable(
            module.FORMAT, module.converters(), mimetype=module.MIMETYPE, types=types,
        ))
        for module in (json, xml)
    })
