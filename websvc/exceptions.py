# -*- coding: utf-8 -*-
# Part of Websvc, see LICENSE file for full copyright and licensing details.


"""The Websvc Exceptions module defines the core exception types.

Those types are understood by the RPC layer: each one carries the HTTP
status the error translator answers with. Any other exception type
bubbling until the RPC layer will be treated as a 'Server error'.
"""


class WebServiceException(Exception):
    """Base error of the web service layer.

    :param message: exception message, sent back to the client
    :param status: HTTP status code of the error response, defaults to
        the class ``status``
    """
    status = 500

    def __init__(self, message, status=None):
        super().__init__(message)
        if status is not None:
            self.status = status


class Forbidden(WebServiceException):
    """The caller is not allowed to call the requested method.

    .. admonition:: Example

        An anonymous caller targets a method that is not declared public.
    """
    status = 403


class MethodNotAllowed(WebServiceException):
    """The request verb does not match the one declared for the method."""
    status = 405


class InternalError(WebServiceException):
    """Server side failure, such as a missing required parameter."""
    status = 500


class AccessDenied(Exception):
    """Entity level access error.

    .. note::

        No traceback.

    .. admonition:: Example

        When a repository refuses to hand out a record the caller may
        not view.
    """

    def __init__(self, message="Access Denied"):
        super().__init__(message)
        self.with_traceback(None)
        self.__cause__ = None
        self.traceback = ('', '', '')
