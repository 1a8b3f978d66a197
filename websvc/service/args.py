# Part of Websvc, see LICENSE file for full copyright and licensing details.

""" Extraction of the call arguments out of an incoming request.

The query string (or the posted form), a JSON body and the URL segments
trailing ``<service>/<method>`` are merged into one flat mapping; the
parameter binder later picks the values it needs by parameter name.
"""

import json
import logging

from werkzeug.exceptions import BadRequest

_logger = logging.getLogger(__name__)

# The request mimetypes that transport JSON in their body.
JSON_MIMETYPES = ('application/json', 'application/json-rpc')

# Keys set by the routing layer rather than by the client.
RESERVED_PARAMS = ('url',)


def effective_method(method, body):
    """ A request carrying a body is handled as a ``POST`` whatever its
    declared verb.
    """
    return 'POST' if body else method.upper()


def is_json(content_type):
    content_type = (content_type or '').lower()
    return any(mimetype in content_type for mimetype in JSON_MIMETYPES)


def parse_remaining(remaining):
    """ Parse ``k1/v1/k2/v2`` into ``{'k1': 'v1', 'k2': 'v2'}``. A trailing
    key without value, and keys with an empty value, are ignored.
    """
    bits = (remaining or '').strip('/').split('/')
    params = {}
    for i in range(0, len(bits), 2):
        key = bits[i]
        value = bits[i + 1] if i + 1 < len(bits) else None
        if key and value:
            params[key] = value
    return params


def extract_args(request_type, query, form, body=b'', content_type=None, remaining=''):
    """ Build the argument mapping of a call.

    :param str request_type: the effective verb, see :func:`effective_method`
    :param Mapping query: the query string parameters
    :param Mapping form: the posted form parameters
    :param bytes body: the raw request body
    :param str content_type: the request ``Content-Type`` header
    :param str remaining: the URL path after the method segment
    :returns: the merged key-value pairs, URL segments taking precedence
    :rtype: dict
    :raises BadRequest: when a JSON body cannot be decoded
    """
    args = dict(query if request_type == 'GET' else form)
    for key in RESERVED_PARAMS:
        args.pop(key, None)

    if not args and body and is_json(content_type):
        try:
            body_params = json.loads(body)
        except ValueError as exc:
            raise BadRequest("Invalid JSON data: %s" % exc) from exc
        if isinstance(body_params, dict):
            params = body_params.get('params', body_params)
            if isinstance(params, dict):
                args = dict(params)
        else:
            _logger.debug("Ignoring a JSON body that is not an object: %.60r", body)

    args.update(parse_remaining(remaining))
    return args
