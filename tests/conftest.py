"""Shared fixtures: an environment serving the sample services, and a
werkzeug test client on top of it."""

import pytest
from werkzeug.test import Client

from websvc.api import Environment
from websvc.http import Application
from websvc.models import MemoryRepository
from websvc.service.security import TokenAuthenticator

from tests.common import (
    FAST_CRYPT, EchoService, NoteService, OpenService, WidgetService,
    make_users, make_widgets,
)


@pytest.fixture
def repository():
    return MemoryRepository(make_users() + list(make_widgets()))


@pytest.fixture
def env(repository):
    services = {
        'echo': EchoService(),
        'widget': WidgetService(repository),
        'note': NoteService(),
        'open': OpenService(),
    }
    return Environment(
        services,
        repository=repository,
        authenticator=TokenAuthenticator(repository, header='X-Auth-Token', crypt_context=FAST_CRYPT),
    )


@pytest.fixture
def client(env):
    return Client(Application(env))
