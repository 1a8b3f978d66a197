# -*- coding: utf-8 -*-
# Part of Websvc, see LICENSE file for full copyright and licensing details.

""" Callers and access control.

Two independent tiers decide whether a method may be called:

* the service allowed-method table restricts which methods are
  web-callable, with which verb and behind which permission;
* anonymous callers may only reach the methods the service explicitly
  declares public.
"""

import logging
import typing
from abc import ABC, abstractmethod
from collections.abc import Mapping

from websvc.exceptions import Forbidden, MethodNotAllowed
from websvc.tools import config
from .locator import Capability, capabilities_of

_logger = logging.getLogger(__name__)

# Holding this permission grants all the others.
ADMIN_PERMISSION = 'ADMIN'


class Principal(typing.NamedTuple):
    """ The caller of a web service. ``uid`` is ``None`` for anonymous
    callers.
    """
    uid: typing.Any = None
    login: str | None = None
    permissions: frozenset = frozenset()

    @property
    def is_authenticated(self):
        return self.uid is not None

    def has_permission(self, permission):
        return permission in self.permissions or ADMIN_PERMISSION in self.permissions

    @classmethod
    def from_user(cls, user):
        return cls(user.ID, user.Login, frozenset(user.Permissions or ()))


ANONYMOUS = Principal()


class AccessRule(typing.NamedTuple):
    """ One entry of an allowed-method table. """
    type: str
    permission: str | None = None

    @classmethod
    def parse(cls, info):
        """ Normalize a bare verb (``'GET'``) or a structured rule
        (``{'type': 'POST', 'perm': 'ADMIN'}``).
        """
        if isinstance(info, Mapping):
            return cls(info.get('type') or '', info.get('perm', info.get('permission')))
        return cls(info or '')


def check_methods(method, allowed_methods, request_type, principal):
    """ Check the call against the service allowed-method table.

    :raises Forbidden: when the method is not listed, or when the caller
        lacks the permission of its rule
    :raises MethodNotAllowed: when the request verb differs from the rule's
    """
    if method not in allowed_methods:
        raise Forbidden("You do not have permission to %s" % method)

    rule = AccessRule.parse(allowed_methods[method])
    if rule.permission and not principal.has_permission(rule.permission):
        raise Forbidden("You do not have permission to %s" % method)

    # otherwise it might be the wrong request type
    if rule.type.upper() != request_type:
        raise MethodNotAllowed("%s does not support %s" % (method, request_type))


def check_public(service, method, principal):
    """ Anonymous callers only reach methods the service declares public.

    :raises Forbidden: when the caller is anonymous and the method is not
        public
    """
    if principal.is_authenticated:
        return
    if Capability.HAS_PUBLIC_METHODS not in capabilities_of(service):
        raise Forbidden("Method %s not allowed; no public methods defined" % method)
    if method not in service.public_web_methods():
        raise Forbidden("Public method %s not allowed" % method)


def check_access(service, method, request_type, principal):
    """ Run both access tiers for a call of ``service.method``. """
    caps = capabilities_of(service)
    allowed_methods = service.web_enabled_methods() if Capability.HAS_ALLOWED_METHODS in caps else {}
    if allowed_methods:
        check_methods(method, allowed_methods, request_type, principal)
    check_public(service, method, principal)


class Authenticator(ABC):
    """ Identify the caller of a request. """

    @abstractmethod
    def authenticate(self, httprequest):
        """ Return the :class:`Principal` of the caller, :data:`ANONYMOUS`
        when the request carries no credentials, or ``None`` to reject the
        request altogether.
        """


class TokenAuthenticator(Authenticator):
    """ Authenticate ``<uid>:<secret>`` API tokens against the ``User``
    entities of a repository.

    The credentials are read from the configured header (``X-Auth-Token``
    by default) or from an ``Authorization: Bearer`` header.
    """

    def __init__(self, repository, header=None, crypt_context=None):
        self.repository = repository
        self.header = header or config['auth_header']
        self.crypt_context = crypt_context

    def get_token(self, httprequest):
        token = httprequest.headers.get(self.header)
        if not token:
            scheme, _, value = httprequest.headers.get('Authorization', '').partition(' ')
            if scheme.lower() == 'bearer':
                token = value.strip()
        return token

    def authenticate(self, httprequest):
        token = self.get_token(httprequest)
        if not token:
            return ANONYMOUS

        uid, _, secret = token.partition(':')
        if not uid or not secret:
            _logger.info("Malformed API token")
            return None

        user = self.repository.by_type_and_id('User', uid)
        if user is None or not user.exists():
            _logger.info("API token for unknown user %s", uid)
            return None
        if not user.check_token(secret, self.crypt_context):
            _logger.info("Invalid API token for user %s", user.Login)
            return None
        return Principal.from_user(user)
