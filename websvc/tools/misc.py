# Part of Websvc, see LICENSE file for full copyright and licensing details.
"""
Miscellaneous tools used by Websvc.
"""
from __future__ import annotations

import typing
from collections.abc import Iterable, Iterator, Mapping

K = typing.TypeVar('K')
T = typing.TypeVar('T')

__all__ = [
    'frozendict',
    'freehash',
    'ReadonlyDict',
    'str2bool',
    'unique',
]


def str2bool(s: str, default: bool | None = None) -> bool:
    """ Interpret a request string as a boolean.

    :param str s: the value to interpret, case insensitive
    :param default: returned when ``s`` is not a known boolean literal,
        a ``ValueError`` is raised when it is ``None``
    """
    s = str(s).strip().lower()
    y = 'y yes 1 true t on'.split()
    n = 'n no 0 false f off'.split()
    if s not in (y + n):
        if default is None:
            raise ValueError('Use 0/1/yes/no/true/false/on/off')
        return bool(default)
    return s in y


def unique(it: Iterable[T]) -> Iterator[T]:
    """ Yield the elements of ``it`` in order, skipping those already
    seen. Elements must be hashable.
    """
    seen = set()
    for item in it:
        if item not in seen:
            seen.add(item)
            yield item


def freehash(arg: typing.Any) -> int:
    """ Hash of ``arg``, mappings and iterables hashed by content even
    when they are mutable.
    """
    try:
        return hash(arg)
    except TypeError:
        pass
    if isinstance(arg, Mapping):
        return hash(frozendict(arg))
    if isinstance(arg, Iterable):
        return hash(frozenset(freehash(item) for item in arg))
    return id(arg)


def _immutable(name):
    def method(self, *args, **kwargs):
        raise NotImplementedError("'%s' not supported on %s" % (name, type(self).__name__))
    method.__name__ = name
    return method


class frozendict(dict[K, T], typing.Generic[K, T]):
    """ A hashable dictionary that refuses modifications. """
    __slots__ = ()

    __delitem__ = _immutable('__delitem__')
    __setitem__ = _immutable('__setitem__')
    clear = _immutable('clear')
    pop = _immutable('pop')
    popitem = _immutable('popitem')
    setdefault = _immutable('setdefault')
    update = _immutable('update')

    def __hash__(self) -> int:  # type: ignore
        return hash(frozenset((key, freehash(val)) for key, val in self.items()))


class ReadonlyDict(Mapping[K, T], typing.Generic[K, T]):
    """ A mapping over a private copy of ``data``. Unlike a
    :class:`frozendict` it is not a ``dict``, so ``dict.update(ro, ...)``
    fails as well.

    Subclasses may define ``__missing__`` for absent keys.
    """
    def __init__(self, data):
        self.__data = dict(data)

    def __contains__(self, key: K):
        return key in self.__data

    def __getitem__(self, key: K) -> T:
        if key not in self.__data and hasattr(type(self), '__missing__'):
            return self.__missing__(key)
        return self.__data[key]

    def __len__(self):
        return len(self.__data)

    def __iter__(self):
        return iter(self.__data)
