# Part of Websvc, see LICENSE file for full copyright and licensing details.

"""
    Entity module:
     * Entity classes registered by name, the name is the ``<param>Type``
       value clients send to designate the class of an entity parameter
     * Exposed field set, used by the response converters
     * Per record view permission
     * Repository interface and its in-memory implementation

"""
from __future__ import annotations

import datetime
import decimal
import enum
import logging
import threading
import types
import typing
from abc import ABC, abstractmethod
from collections import defaultdict

from .tools.config import crypt_context

if typing.TYPE_CHECKING:
    from collections.abc import Iterable
    from .service.security import Principal

_logger = logging.getLogger(__name__)


class MetaEntity(type):
    """ The metaclass of all entity classes.
        Its main purpose is to register the entity classes by name, and to
        collect the fields declared along the class hierarchy.
    """
    registry: dict[str, type[Entity]] = {}

    def __new__(meta, name, bases, attrs):
        cls = super().__new__(meta, name, bases, attrs)
        fields = []
        for klass in reversed(cls.__mro__):
            for field in klass.__dict__.get('_fields', ()):
                if field not in fields:
                    fields.append(field)
        cls._all_fields = tuple(fields)
        if attrs.get('_register', True):
            if name in meta.registry:
                _logger.warning("Entity class %s registered twice, keeping %s.%s",
                                name, cls.__module__, name)
            meta.registry[name] = cls
        return cls


def entity_class(name: str) -> type[Entity] | None:
    """ Return the entity class registered under ``name``, if any. """
    return MetaEntity.registry.get(name)


class Entity(metaclass=MetaEntity):
    """ Base class of the domain objects handed to and returned by web
    services.

    Subclasses declare their stored fields in ``_fields``; fields are
    accumulated along the inheritance chain. ``_exposed_fields``, when set,
    restricts the fields serialized in responses.

    .. code-block:: python

        class Widget(Entity):
            _fields = ('Title', 'Price')
            _exposed_fields = ('ID', 'Title')
    """
    _register = False
    _fields: tuple[str, ...] = ('ID',)
    _exposed_fields: tuple[str, ...] | None = None

    def __init__(self, **values):
        unknown = set(values) - set(self._all_fields)
        if unknown:
            raise TypeError("%s got unexpected fields %s" % (type(self).__name__, sorted(unknown)))
        for field in self._all_fields:
            setattr(self, field, values.get(field))

    def __repr__(self):
        return "%s(%s)" % (type(self).__name__, self.ID)

    def __eq__(self, other):
        return type(self) is type(other) and self.ID == other.ID

    def __hash__(self):
        return hash((type(self).__name__, self.ID))

    def exists(self) -> bool:
        return self.ID is not None

    def to_map(self) -> dict:
        """ Return the stored field values, keyed by field name. """
        return {field: getattr(self, field) for field in self._all_fields}

    def to_filtered_map(self) -> dict:
        """ Return the field values clients are allowed to see. """
        data = self.to_map()
        if self._exposed_fields is None:
            return data
        return {field: data[field] for field in self._exposed_fields if field in data}

    def can_view(self, principal: Principal) -> bool:
        """ Whether ``principal`` may read this record. Records are public
        unless a subclass says otherwise.
        """
        return True


class EntityList(list):
    """ An ordered, named collection of entities.

    It serializes as a list of exposed field maps, unlike a plain list that
    goes through the generic collection converter.
    """

    def filter_viewable(self, principal: Principal) -> EntityList:
        return type(self)(item for item in self if item.can_view(principal))


class Kind(enum.Enum):
    """ The categories of values the dispatcher tells apart, for parameter
    binding and for picking a response converter.
    """
    ENTITY = 'entity'
    COLLECTION = 'collection'
    SCALAR = 'scalar'
    OTHER = 'other'


SCALAR_TYPES = (str, bytes, bool, int, float, decimal.Decimal, datetime.date, datetime.time, type(None))
COLLECTION_TYPES = (list, tuple, dict, set, frozenset)


def unwrap_optional(annotation):
    """ ``Optional[X]`` and ``X | None`` to ``X``. """
    if typing.get_origin(annotation) in (typing.Union, types.UnionType):
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def kind_of(value) -> Kind:
    """ Category of a runtime value. Only the plain builtin collections
    are collections, a named subclass (such as :class:`EntityList`) is
    categorized by its own type.
    """
    if isinstance(value, Entity):
        return Kind.ENTITY
    if type(value) in COLLECTION_TYPES:
        return Kind.COLLECTION
    if isinstance(value, SCALAR_TYPES):
        return Kind.SCALAR
    return Kind.OTHER


def kind_of_type(annotation) -> Kind:
    """ Category of a declared parameter type. String annotations name
    entity classes.
    """
    annotation = unwrap_optional(annotation)
    if isinstance(annotation, str):
        annotation = entity_class(annotation) or annotation
    origin = typing.get_origin(annotation)
    if origin is not None:
        return Kind.COLLECTION if origin in COLLECTION_TYPES else Kind.OTHER
    if isinstance(annotation, type):
        if issubclass(annotation, Entity):
            return Kind.ENTITY
        if issubclass(annotation, COLLECTION_TYPES):
            return Kind.COLLECTION
        if issubclass(annotation, SCALAR_TYPES):
            return Kind.SCALAR
    return Kind.OTHER


class User(Entity):
    """ An account able to call web services with an API token.

    ``Token`` stores the hash of the secret part of the ``<uid>:<secret>``
    credential, ``TokenExpiry`` its optional expiry datetime. The
    ``ADMIN`` permission implies all the others.
    """
    _fields = ('Login', 'Token', 'TokenExpiry', 'Permissions')
    _exposed_fields = ('ID', 'Login')

    def __init__(self, **values):
        super().__init__(**values)
        self.Permissions = frozenset(self.Permissions or ())

    def set_token(self, secret: str, expiry: datetime.datetime | None = None, ctx=None):
        self.Token = (ctx or crypt_context).hash(secret)
        self.TokenExpiry = expiry

    def check_token(self, secret: str, ctx=None) -> bool:
        if not self.Token:
            return False
        expiry = self.TokenExpiry
        # aware expiries are compared with the current time in their zone
        if expiry and expiry < datetime.datetime.now(expiry.tzinfo):
            _logger.info("Expired API token for user %s", self.Login)
            return False
        return (ctx or crypt_context).verify(secret, self.Token)

    def can_view(self, principal):
        return principal.uid == self.ID or principal.has_permission('ADMIN')


class Repository(ABC):
    """ Interface of the entity store the parameter binder resolves entity
    parameters against.
    """

    @abstractmethod
    def by_type_and_id(self, type_name: str, record_id) -> Entity | None:
        """ Return the entity of class ``type_name`` identified by
        ``record_id``, or ``None`` when there is none.

        Implementations may raise :class:`~websvc.exceptions.AccessDenied`
        to refuse a record outright.
        """


class MemoryRepository(Repository):
    """ A process-local repository, records are indexed by class name and
    by the string form of their ``ID``.
    """

    def __init__(self, records: Iterable[Entity] = ()):
        self._lock = threading.RLock()
        self._records = defaultdict(dict)
        for record in records:
            self.add(record)

    def add(self, record: Entity) -> Entity:
        if record.ID is None:
            raise ValueError("Cannot store %r without an ID" % record)
        with self._lock:
            self._records[type(record).__name__][str(record.ID)] = record
        return record

    def remove(self, record: Entity) -> None:
        with self._lock:
            self._records[type(record).__name__].pop(str(record.ID), None)

    def by_type_and_id(self, type_name, record_id):
        with self._lock:
            return self._records.get(type_name, {}).get(str(record_id))

    def search(self, type_name: str) -> EntityList:
        with self._lock:
            return EntityList(self._records.get(type_name, {}).values())
