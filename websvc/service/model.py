# Part of Websvc, see LICENSE file for full copyright and licensing details.

""" Binding of the call arguments to the parameters of a service method, and
the call itself.

Parameters are bound by name. A parameter typed with an entity class is
resolved from the ``<Param>ID`` and ``<Param>Type`` arguments against the
repository, a parameter named ``file`` receives the raw body of ``POST``
requests, and declared defaults fill in whatever the request left out.
"""
from __future__ import annotations

import decimal
import inspect
import logging
import typing
from collections.abc import Mapping

from werkzeug.exceptions import NotFound

from websvc.exceptions import InternalError
from websvc.models import Kind, entity_class, kind_of_type, unwrap_optional
from websvc.tools import frozendict, str2bool
from .args import effective_method, extract_args
from .locator import RESERVED_METHODS
from .security import ANONYMOUS, Principal, check_access

_logger = logging.getLogger(__name__)

# The parameter receiving the raw request body on POST.
BODY_PARAM = 'file'


class ParamSpec(typing.NamedTuple):
    """ What the binder needs to know about one declared parameter. """
    name: str
    annotation: typing.Any = None
    kind: Kind = Kind.OTHER
    optional: bool = False
    default: typing.Any = None
    keyword_only: bool = False


class ServiceCall(typing.NamedTuple):
    """ A request to run ``service.method``, as received from the HTTP
    layer.
    """
    service: str
    method: str
    verb: str = 'GET'
    query: Mapping = frozendict()
    form: Mapping = frozendict()
    body: bytes = b''
    content_type: str | None = None
    remaining: str = ''
    principal: Principal = ANONYMOUS

    @property
    def request_type(self):
        return effective_method(self.verb, self.body)

    def get_args(self):
        return extract_args(self.request_type, self.query, self.form,
                            self.body, self.content_type, self.remaining)


def describe_method(method) -> tuple[ParamSpec, ...]:
    """ Return the parameters of ``method`` in declaration order. Variadic
    parameters are left out, they cannot be bound by name.
    """
    try:
        signature = inspect.signature(method, eval_str=True)
    except (NameError, TypeError):
        # annotations naming something out of reach stay strings
        signature = inspect.signature(method)

    specs = []
    for param in signature.parameters.values():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        annotation = None
        if param.annotation is not param.empty:
            annotation = unwrap_optional(param.annotation)
            if isinstance(annotation, str):
                annotation = entity_class(annotation) or annotation
        has_default = param.default is not param.empty
        specs.append(ParamSpec(
            name=param.name,
            annotation=annotation,
            kind=kind_of_type(annotation) if annotation is not None else Kind.OTHER,
            optional=has_default,
            default=param.default if has_default else None,
            keyword_only=param.kind is param.KEYWORD_ONLY,
        ))
    return tuple(specs)


def _entity_keys(name):
    # ``widget`` is looked up as ``WidgetID``/``WidgetType``, then as
    # ``widgetID``/``widgetType``
    capitalized = name[:1].upper() + name[1:]
    for base in dict.fromkeys((capitalized, name)):
        yield base + 'ID', base + 'Type'


def resolve_entity(spec, args, principal, repository):
    """ Return the entity designated by the ``<Param>ID`` and
    ``<Param>Type`` arguments, or ``None`` when the arguments are missing,
    name an unknown type or designate a record the caller may not view.
    """
    for id_key, type_key in _entity_keys(spec.name):
        if args.get(id_key) not in (None, '') and args.get(type_key):
            break
    else:
        return None

    type_name = args[type_key]
    if not isinstance(type_name, str) or entity_class(type_name) is None:
        _logger.debug("Parameter %s: unknown entity type %r", spec.name, type_name)
        return None
    if repository is None:
        _logger.warning("Parameter %s: no repository to resolve %s entities", spec.name, type_name)
        return None

    record = repository.by_type_and_id(type_name, args[id_key])
    if record is None:
        return None
    if not record.can_view(principal):
        _logger.info("Parameter %s: %s %s not viewable by %s",
                     spec.name, type_name, args[id_key], principal.login or 'anonymous')
        return None
    return record


def coerce(spec, value):
    """ Convert a textual argument to the scalar type ``spec`` declares.
    Other values go through unchanged.
    """
    if spec.kind is not Kind.SCALAR or not isinstance(value, str):
        return value
    annotation = spec.annotation
    try:
        if annotation is bool:
            return str2bool(value)
        if annotation in (int, float, decimal.Decimal):
            return annotation(value)
    except (ValueError, decimal.InvalidOperation) as e:
        raise InternalError("Parameter %s expects %s, got %r"
                            % (spec.name, annotation.__name__, value)) from e
    return value


def bind_params(method, args, body=b'', request_type='GET', principal=ANONYMOUS,
                repository=None, method_name=None):
    """ Produce the arguments to call ``method`` with.

    :param method: the bound service method
    :param Mapping args: the call arguments, see
        :func:`~websvc.service.args.extract_args`
    :param bytes body: the raw request body
    :param str request_type: the effective request verb
    :param principal: the caller, entities it may not view are not bound
    :param repository: where entity parameters are resolved
    :returns: the positional arguments and the keyword-only ones
    :rtype: tuple(list, dict)
    :raises InternalError: when a required parameter cannot be bound
    """
    method_name = method_name or getattr(method, '__name__', repr(method))
    params = []
    kwargs = {}
    for spec in describe_method(method):
        found = False
        if spec.kind is Kind.ENTITY:
            value = resolve_entity(spec, args, principal, repository)
            found = value is not None
        elif spec.name in args:
            value, found = coerce(spec, args[spec.name]), True
        elif spec.name == BODY_PARAM and request_type == 'POST':
            value, found = body, True

        if not found:
            if not spec.optional:
                raise InternalError("Service method %s expects parameter %s" % (method_name, spec.name))
            value = spec.default

        if spec.keyword_only:
            kwargs[spec.name] = value
        else:
            params.append(value)
    return params, kwargs


def get_method(service, service_name, name):
    """ Return the bound method ``name`` of ``service``.

    :raises NotFound: for private names, for the methods of the service
        protocol itself and for anything that is not callable
    """
    if not name or name.startswith('_') or name in RESERVED_METHODS:
        raise NotFound("Method %s not found on service %s" % (name, service_name))
    method = getattr(service, name, None)
    if not callable(method) or inspect.isclass(method):
        raise NotFound("Method %s not found on service %s" % (name, service_name))
    return method


def execute(method, params, kwargs=None):
    return method(*params, **(kwargs or {}))


def dispatch(env, call):
    """ Run ``call`` against the services of ``env`` and return the raw
    result, before any conversion.

    :raises NotFound: when the service or the method does not exist
    """
    service = env.services.get(call.service)
    if service is None:
        raise NotFound("Service %s not found" % call.service)

    # the gate only needs the verb, arguments are parsed once it passes
    request_type = call.request_type
    check_access(service, call.method, request_type, call.principal)
    args = call.get_args()

    method = get_method(service, call.service, call.method)
    params, kwargs = bind_params(
        method, args,
        body=call.body,
        request_type=request_type,
        principal=call.principal,
        repository=env.repository,
        method_name=call.method,
    )
    return execute(method, params, kwargs)
