# Part of Websvc, see LICENSE file for full copyright and licensing details.
r"""\
Websvc HTTP layer.

Requests are routed by URL:

.. code-block:: text

    /jsonservice/<service>/<method>[/<key>/<value>...]
    /xmlservice/<service>/<method>[/<key>/<value>...]

The first segment selects the :class:`Dispatcher`, and thus the response
format. The caller is authenticated first, the call is then run by
:func:`websvc.service.model.dispatch` and its result converted by the
converters of the format. Errors are answered with a JSON document:

.. code-block:: json

    {"message": "Public method save not allowed", "status": 403}
"""
from __future__ import annotations

import collections.abc
import json
import logging
import threading
import time
from abc import ABC

import werkzeug.datastructures
import werkzeug.local
import werkzeug.routing
import werkzeug.wrappers
from werkzeug.exceptions import HTTPException

from . import netsvc
from .exceptions import AccessDenied, Forbidden, WebServiceException
from .service.model import ServiceCall, dispatch
from .service.security import ANONYMOUS
from .tools import config, lazy_property

_logger = logging.getLogger(__name__)
rpc_request = logging.getLogger(__name__ + '.rpc.request')
rpc_response = logging.getLogger(__name__ + '.rpc.response')

# One dispatcher class per response format, indexed by format name.
_dispatchers = {}

_request_stack = werkzeug.local.LocalStack()
request = _request_stack()


class Request:
    """ Per request state: the werkzeug request, the environment serving
    it, the authenticated caller and the dispatcher of the requested
    format.
    """
    def __init__(self, httprequest, env):
        self.httprequest = httprequest
        self.env = env
        self.principal = ANONYMOUS
        self.dispatcher = None

    def make_call(self, service, method, remaining=''):
        httprequest = self.httprequest
        # read the body before the form so both stay available
        body = httprequest.get_data(cache=True)
        return ServiceCall(
            service=service,
            method=method,
            verb=httprequest.method,
            query=httprequest.args.to_dict(),
            form=httprequest.form.to_dict(),
            body=body,
            content_type=httprequest.content_type,
            remaining=remaining,
            principal=self.principal,
        )


def error_response(message, status):
    body = json.dumps({'message': message, 'status': status})
    return werkzeug.wrappers.Response(body, status=status, mimetype='application/json')


def dispatch_rpc(env, call):
    """ Run ``call`` and trace it on the ``rpc`` loggers. """
    start_time = time.time()
    if rpc_request.isEnabledFor(logging.DEBUG):
        netsvc.log(rpc_request, logging.DEBUG, '%s.%s' % (call.service, call.method),
                   {'verb': call.verb, 'query': call.query, 'form': call.form,
                    'remaining': call.remaining, 'user': call.principal.login})
    result = dispatch(env, call)
    if rpc_response.isEnabledFor(logging.DEBUG):
        netsvc.log(rpc_response, logging.DEBUG, '%s.%s time:%.3fs ' % (
            call.service, call.method, time.time() - start_time), result)
    elif rpc_request.isEnabledFor(logging.INFO):
        rpc_request.info('%s.%s time:%.3fs', call.service, call.method, time.time() - start_time)
    return result


class Dispatcher(ABC):
    """ Serve the calls answering in one response format. """
    routing_type: str

    @classmethod
    def __init_subclass__(cls):
        super().__init_subclass__()
        _dispatchers[cls.routing_type] = cls

    def __init__(self, env):
        self.env = env

    @property
    def converter(self):
        return self.env.converter(self.routing_type)

    def dispatch(self, call):
        """ Run ``call`` and convert its result to a response of the
        dispatcher's format.
        """
        result = dispatch_rpc(self.env, call)
        body = self.converter.convert(result)
        return werkzeug.wrappers.Response(body, status=200, mimetype=self.converter.mimetype)

    def handle_error(self, exc: Exception) -> collections.abc.Callable:
        """ Transform the exception into a JSON error response, whatever
        the format of the dispatcher.

        :param Exception exc: the exception that occurred.
        :returns: a WSGI application
        """
        if isinstance(exc, WebServiceException):
            status, message = exc.status, exc.args[0]
        elif isinstance(exc, AccessDenied):
            status, message = 403, exc.args[0]
        elif isinstance(exc, HTTPException):
            status, message = exc.code, exc.description
        else:
            _logger.exception("Exception during request handling.")
            return error_response(str(exc) or type(exc).__name__, 500)

        if status >= 500:
            _logger.error("%s (%s)", message, status)
        elif isinstance(exc, (WebServiceException, AccessDenied)):
            _logger.warning("%s (%s)", message, status)
        return error_response(message, status)


class JsonDispatcher(Dispatcher):
    routing_type = 'json'


class XmlDispatcher(Dispatcher):
    routing_type = 'xml'


def serve(env, call, fmt):
    """ Answer ``call`` in the format ``fmt``, errors included.

    :param env: the :class:`~websvc.api.Environment`
    :param call: the :class:`~websvc.service.model.ServiceCall`
    :param str fmt: ``'json'`` or ``'xml'``
    :returns: the werkzeug response
    """
    dispatcher = _dispatchers[fmt](env)
    try:
        return dispatcher.dispatch(call)
    except Exception as exc:
        return dispatcher.handle_error(exc)


class Application:
    """ Websvc WSGI Application

    :param env: the :class:`~websvc.api.Environment` to serve, built from
        the configuration when not given
    """
    # See also: https://www.python.org/dev/peps/pep-3333

    def __init__(self, env=None):
        if env is not None:
            self.env = env

    @lazy_property
    def env(self):
        from .api import Environment
        from .models import MemoryRepository
        from .service.locator import ServiceLocator
        from .service.security import TokenAuthenticator
        repository = MemoryRepository()
        return Environment(
            ServiceLocator.from_registry(),
            repository=repository,
            authenticator=TokenAuthenticator(repository),
        )

    @lazy_property
    def routing_map(self):
        rules = []
        for fmt in self.env.converters:
            if fmt not in _dispatchers:
                continue
            prefix = config.get('%s_prefix' % fmt) or '%sservice' % fmt
            rules += [
                werkzeug.routing.Rule('/%s/<service>/<method>' % prefix, endpoint=fmt),
                werkzeug.routing.Rule('/%s/<service>/<method>/<path:remaining>' % prefix, endpoint=fmt),
            ]
        return werkzeug.routing.Map(rules, strict_slashes=False)

    def __call__(self, environ, start_response):
        """
        WSGI application entry point.

        :param dict environ: container for CGI environment variables
            such as the request HTTP headers, the source IP address and
            the body as an io file.
        :param callable start_response: function provided by the WSGI
            server that this application must call in order to send the
            HTTP response status line and the response headers.
        """
        current_thread = threading.current_thread()
        current_thread.perf_t0 = time.time()
        if hasattr(current_thread, 'service'):
            del current_thread.service

        httprequest = werkzeug.wrappers.Request(environ)
        httprequest.parameter_storage_class = werkzeug.datastructures.ImmutableMultiDict
        httprequest.max_content_length = config['max_content_length']
        request = Request(httprequest, self.env)
        _request_stack.push(request)
        try:
            try:
                fmt, args = self.routing_map.bind_to_environ(environ).match()
            except HTTPException as exc:
                return error_response(exc.description, exc.code)(environ, start_response)

            request.dispatcher = _dispatchers[fmt](self.env)
            current_thread.service = args['service']
            try:
                principal = ANONYMOUS
                if self.env.authenticator is not None:
                    principal = self.env.authenticator.authenticate(httprequest)
                if principal is None:
                    raise Forbidden("User not found")
                request.principal = principal
                call = request.make_call(args['service'], args['method'], args.get('remaining', ''))
            except Exception as exc:
                response = request.dispatcher.handle_error(exc)
            else:
                response = serve(self.env, call, fmt)
            return response(environ, start_response)
        finally:
            _request_stack.pop()


root = Application()
