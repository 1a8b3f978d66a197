# Part of Websvc, see LICENSE file for full copyright and licensing details.

""" The dispatch environment.

An :class:`Environment` bundles what serving a call needs: the services,
the entity repository, the authenticator and the response converters. It is
built once at startup and shared, read-only, by all the requests:

.. code-block:: python

    env = Environment(ServiceLocator.from_registry(), repository=repository)
    env['echo'].ping('world')
"""
from __future__ import annotations

import logging
from collections.abc import Mapping

from .tools import frozendict

_logger = logging.getLogger(__name__)


class Environment(Mapping):
    """ Immutable bundle of the services and of their collaborators. The
    environment maps service names to service instances.

    :param services: a :class:`~websvc.service.locator.ServiceLocator`, or
        any mapping of service names to services
    :param repository: the :class:`~websvc.models.Repository` entity
        parameters are resolved against
    :param authenticator: the :class:`~websvc.service.security.Authenticator`
        identifying callers, anonymous access only when ``None``
    :param converters: response converters keyed by format name, the JSON
        and XML ones by default
    """
    __slots__ = ('services', 'repository', 'authenticator', 'converters')

    def __init__(self, services, repository=None, authenticator=None, converters=None):
        from .service.locator import ServiceLocator
        from .serialisers import default_converters
        if not isinstance(services, ServiceLocator):
            services = ServiceLocator(services)
        if converters is None:
            converters = default_converters()
        object.__setattr__(self, 'services', services)
        object.__setattr__(self, 'repository', repository)
        object.__setattr__(self, 'authenticator', authenticator)
        object.__setattr__(self, 'converters', frozendict(converters))
        _logger.debug("Environment with services %s and formats %s",
                      ', '.join(sorted(services)), ', '.join(sorted(self.converters)))

    def __setattr__(self, name, value):
        raise AttributeError("Environment is read-only")

    def __delattr__(self, name):
        raise AttributeError("Environment is read-only")

    def __repr__(self):
        return "<Environment %s>" % ', '.join(sorted(self.services))

    def __getitem__(self, service_name):
        """ Return the service named ``service_name``. """
        return self.services[service_name]

    def __iter__(self):
        return iter(self.services)

    def __len__(self):
        return len(self.services)

    def converter(self, format):
        """ Return the response converter of ``format``.

        :raises KeyError: when the format is not supported
        """
        return self.converters[format]
