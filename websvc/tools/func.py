# Part of Websvc, see LICENSE file for full copyright and licensing details.

from __future__ import annotations
import typing

from decorator import decorator

__all__ = [
    'lazy_property',
    'locked',
    'synchronized',
]

T = typing.TypeVar("T")

if typing.TYPE_CHECKING:
    from collections.abc import Callable


class lazy_property(typing.Generic[T]):
    """ Decorator for a lazy property of an object, i.e., an object attribute
        that is determined by the result of a method call evaluated once. To
        reevaluate the property, simply delete the attribute on the object, and
        get it again.
    """
    def __init__(self, fget: Callable[[typing.Any], T]):
        self.fget = fget

    def __get__(self, obj, cls) -> T:
        if obj is None:
            return self
        value = self.fget(obj)
        setattr(obj, self.fget.__name__, value)
        return value

    @property
    def __doc__(self):
        return self.fget.__doc__


def synchronized(lock_attr: str = '_lock'):
    """ Serialize calls to the decorated method on the instance lock
    ``lock_attr``. The wrapper keeps the signature of the method, so the
    parameter binder still sees the declared parameters.
    """
    @decorator
    def locked(func, inst, *args, **kwargs):
        with getattr(inst, lock_attr):
            return func(inst, *args, **kwargs)
    return locked
locked = synchronized()
