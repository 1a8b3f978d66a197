# Part of Websvc, see LICENSE file for full copyright and licensing details.

""" Service declaration and lookup.

A web service is a plain object whose public methods become callable over
``/jsonservice/<service>/<method>`` and ``/xmlservice/<service>/<method>``.
Services deriving from :class:`WebService` declare which methods are
web-callable (and under which verb and permission) and which ones
anonymous callers may use, either with class attributes or with the
:func:`webmethod` decorator:

.. code-block:: python

    class NoteService(WebService):
        _name = 'note'
        _allowed_methods = {'list': 'GET'}

        def list(self):
            ...

        @webmethod('POST', perm='NOTE_EDIT')
        def save(self, note: Note, Title):
            ...

        @webmethod('GET', public=True)
        def count(self):
            ...
"""

import enum
import logging
from collections.abc import Mapping

from websvc.tools import frozendict

_logger = logging.getLogger(__name__)


class Capability(enum.Enum):
    """ What a service declares about its methods. """
    HAS_ALLOWED_METHODS = 'allowed_methods'
    HAS_PUBLIC_METHODS = 'public_methods'


def webmethod(type=None, perm=None, public=False):
    """ Declare the decorated service method as web-callable.

    :param str type: the request verb the method answers to (``'GET'`` or
        ``'POST'``); when given, the method is added to the service
        allowed-method table
    :param str perm: the permission the caller must hold
    :param bool public: whether anonymous callers may call the method
    """
    def decorator(method):
        method.web_routing = {'type': type, 'perm': perm, 'public': public}
        return method
    return decorator


def _collect(cls):
    allowed = {}
    public = set()
    caps = set()
    for klass in reversed(cls.__mro__):
        attrs = vars(klass)
        if attrs.get('_allowed_methods') is not None:
            allowed.update(attrs['_allowed_methods'])
            caps.add(Capability.HAS_ALLOWED_METHODS)
        if attrs.get('_public_methods') is not None:
            public.update(attrs['_public_methods'])
            caps.add(Capability.HAS_PUBLIC_METHODS)
        for name, member in attrs.items():
            routing = getattr(member, 'web_routing', None)
            if not isinstance(routing, dict):
                continue
            if routing['type']:
                rule = routing['type']
                if routing['perm']:
                    rule = {'type': routing['type'], 'perm': routing['perm']}
                allowed[name] = rule
                caps.add(Capability.HAS_ALLOWED_METHODS)
            if routing['public']:
                public.add(name)
                caps.add(Capability.HAS_PUBLIC_METHODS)

    # methods overridden by hand also count as declarations
    if cls.web_enabled_methods is not WebService.web_enabled_methods:
        caps.add(Capability.HAS_ALLOWED_METHODS)
    if cls.public_web_methods is not WebService.public_web_methods:
        caps.add(Capability.HAS_PUBLIC_METHODS)
    return frozendict(allowed), frozenset(public), frozenset(caps)


class WebService:
    """ Base class of the objects exposed as web services.

    ``capabilities`` is computed once, when the class is created, from the
    class declarations; the access control gate only looks at it, it never
    probes the service for optional methods.
    """
    _name = None
    _allowed_methods = None
    _public_methods = None

    # indexed by lowercase service name, the last class defined wins
    services = {}
    capabilities = frozenset()
    _web_methods = frozendict()
    _web_public_methods = frozenset()

    def __init_subclass__(cls):
        super().__init_subclass__()
        cls._web_methods, cls._web_public_methods, cls.capabilities = _collect(cls)
        if cls._name:
            name = cls._name.lower()
            if name in WebService.services:
                _logger.debug("Service %r overridden by %s.%s", name, cls.__module__, cls.__qualname__)
            WebService.services[name] = cls

    def web_enabled_methods(self) -> Mapping:
        """ The allowed-method table: method name to either a request verb
        or a ``{'type': verb, 'perm': permission}`` rule.
        """
        return self._web_methods

    def public_web_methods(self) -> frozenset:
        """ The names of the methods anonymous callers may call. """
        return self._web_public_methods


# Methods of the service protocol itself, never callable over the web.
RESERVED_METHODS = frozenset(
    name for name in vars(WebService) if not name.startswith('_')
)


def capabilities_of(service):
    return getattr(service, 'capabilities', frozenset())


class ServiceLocator(Mapping):
    """ Read-only mapping of the service instances the server exposes,
    keyed by case-insensitive service name.
    """

    def __init__(self, services=None):
        self._services = {
            name.lower(): service
            for name, service in (services or {}).items()
        }

    @classmethod
    def from_registry(cls, names=None):
        """ Instantiate every :class:`WebService` subclass declaring a
        ``_name`` (restricted to ``names`` when given). Each service is a
        single instance shared by all requests.
        """
        wanted = {name.lower() for name in names} if names is not None else None
        services = {}
        for name, service_cls in WebService.services.items():
            if wanted is not None and name not in wanted:
                continue
            services[name] = service_cls()
        _logger.debug("Services loaded: %s", ', '.join(sorted(services)))
        return cls(services)

    def get(self, name, default=None):
        return self._services.get(name.lower(), default)

    def __getitem__(self, name):
        return self._services[name.lower()]

    def __iter__(self):
        return iter(self._services)

    def __len__(self):
        return len(self._services)
