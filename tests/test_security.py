"""Access control: allowed-method tables, public methods, token authentication.

Invariants:
    - A listed method called with another verb is always a 405
    - An anonymous caller reaching a non-public method is always a 403
    - ADMIN implies every permission
"""

import datetime

import pytest
from freezegun import freeze_time
from werkzeug.datastructures import Headers

from websvc.exceptions import Forbidden, MethodNotAllowed
from websvc.models import MemoryRepository, User
from websvc.service.locator import Capability, ServiceLocator, WebService, capabilities_of
from websvc.service.security import (
    ANONYMOUS, AccessRule, Principal, TokenAuthenticator,
    check_access, check_methods, check_public,
)

from tests.common import (
    ADMIN_TOKEN, EDITOR_TOKEN, FAST_CRYPT, READER_TOKEN,
    EchoService, NoteService, OpenService, WidgetService, make_users,
)

EDITOR = Principal(2, 'editor', frozenset({'WIDGET_EDIT'}))
READER = Principal(3, 'reader')
ADMIN = Principal(1, 'admin', frozenset({'ADMIN'}))


class FakeRequest:
    def __init__(self, headers=None):
        self.headers = Headers(headers or {})


# -- Rules -----------------------------------------------------------------------

def test_access_rule_parse():
    assert AccessRule.parse('GET') == AccessRule('GET', None)
    assert AccessRule.parse({'type': 'POST', 'perm': 'X'}) == AccessRule('POST', 'X')
    assert AccessRule.parse({'type': 'POST', 'permission': 'Y'}) == AccessRule('POST', 'Y')


def test_admin_implies_every_permission():
    assert ADMIN.has_permission('WIDGET_EDIT')
    assert EDITOR.has_permission('WIDGET_EDIT')
    assert not READER.has_permission('WIDGET_EDIT')


@pytest.mark.parametrize('verb', ['POST', 'PUT', 'DELETE'])
def test_wrong_verb_is_405(verb):
    with pytest.raises(MethodNotAllowed) as exc:
        check_methods('view', {'view': 'GET'}, verb, READER)
    assert exc.value.status == 405
    assert str(exc.value) == 'view does not support %s' % verb


def test_rule_verb_case_insensitive():
    check_methods('listing', {'listing': 'get'}, 'GET', READER)


def test_unlisted_method_is_403():
    with pytest.raises(Forbidden) as exc:
        check_methods('secret', {'view': 'GET'}, 'GET', ADMIN)
    assert str(exc.value) == 'You do not have permission to secret'


def test_missing_permission_is_403_before_verb():
    rules = {'rename': {'type': 'POST', 'perm': 'WIDGET_EDIT'}}
    with pytest.raises(Forbidden):
        check_methods('rename', rules, 'GET', READER)
    with pytest.raises(MethodNotAllowed):
        check_methods('rename', rules, 'GET', EDITOR)
    check_methods('rename', rules, 'POST', EDITOR)


# -- Public methods --------------------------------------------------------------

def test_anonymous_non_public_is_403():
    with pytest.raises(Forbidden) as exc:
        check_public(EchoService(), 'whoami', ANONYMOUS)
    assert str(exc.value) == 'Public method whoami not allowed'


def test_anonymous_without_public_declaration_is_403():
    with pytest.raises(Forbidden) as exc:
        check_public(OpenService(), 'hello', ANONYMOUS)
    assert str(exc.value) == 'Method hello not allowed; no public methods defined'


def test_authenticated_skips_public_check():
    check_public(OpenService(), 'hello', READER)
    check_public(EchoService(), 'whoami', READER)


def test_anonymous_public_allowed():
    check_access(EchoService(), 'ping', 'GET', ANONYMOUS)


def test_anonymous_listed_but_not_public():
    with pytest.raises(Forbidden):
        check_access(WidgetService(), 'view', 'GET', ANONYMOUS)


def test_verb_checked_even_for_public_methods():
    with pytest.raises(MethodNotAllowed):
        check_access(NoteService(), 'count', 'POST', ANONYMOUS)


# -- Declarations ----------------------------------------------------------------

def test_webmethod_declarations_collected():
    service = NoteService()
    assert capabilities_of(service) == {Capability.HAS_ALLOWED_METHODS, Capability.HAS_PUBLIC_METHODS}
    assert service.web_enabled_methods() == {
        'count': 'GET',
        'save': {'type': 'POST', 'perm': 'NOTE_EDIT'},
    }
    assert service.public_web_methods() == {'count'}


def test_declarations_inherited():
    class LoudEchoService(EchoService):
        _name = 'loudecho'
        _public_methods = ('shout',)

        def shout(self, name='world'):
            return name.upper()

    try:
        assert LoudEchoService().public_web_methods() >= {'ping', 'shout'}
    finally:
        WebService.services.pop('loudecho', None)


def test_plain_object_has_no_capability():
    assert capabilities_of(OpenService()) == frozenset()


def test_locator_case_insensitive():
    locator = ServiceLocator({'Echo': EchoService()})
    assert isinstance(locator.get('ECHO'), EchoService)
    assert locator.get('missing') is None
    assert list(locator) == ['echo']


def test_locator_from_registry_builds_singletons():
    locator = ServiceLocator.from_registry(['echo', 'note'])
    assert set(locator) == {'echo', 'note'}
    assert locator['echo'] is locator.get('Echo')


# -- Token authentication --------------------------------------------------------

@pytest.fixture
def authenticator():
    return TokenAuthenticator(MemoryRepository(make_users()), header='X-Auth-Token', crypt_context=FAST_CRYPT)


def test_no_token_is_anonymous(authenticator):
    assert authenticator.authenticate(FakeRequest()) is ANONYMOUS


def test_valid_token(authenticator):
    principal = authenticator.authenticate(FakeRequest({'X-Auth-Token': EDITOR_TOKEN}))
    assert principal == Principal(2, 'editor', frozenset({'WIDGET_EDIT'}))
    assert principal.is_authenticated


def test_bearer_token(authenticator):
    principal = authenticator.authenticate(FakeRequest({'Authorization': 'Bearer ' + ADMIN_TOKEN}))
    assert principal.login == 'admin'
    assert principal.has_permission('ANYTHING')


@pytest.mark.parametrize('token', ['garbage', '3:', ':reader-secret', '3:wrong', '42:reader-secret'])
def test_bad_tokens_rejected(authenticator, token):
    assert authenticator.authenticate(FakeRequest({'X-Auth-Token': token})) is None


def test_expired_token_rejected():
    user = User(ID=9, Login='temp')
    user.set_token('temp-secret', expiry=datetime.datetime(2030, 1, 1), ctx=FAST_CRYPT)
    authenticator = TokenAuthenticator(MemoryRepository([user]), header='X-Auth-Token', crypt_context=FAST_CRYPT)
    request = FakeRequest({'X-Auth-Token': '9:temp-secret'})

    with freeze_time('2029-12-31 23:00:00'):
        assert authenticator.authenticate(request).login == 'temp'
    with freeze_time('2030-01-01 00:00:01'):
        assert authenticator.authenticate(request) is None


def test_reader_token(authenticator):
    principal = authenticator.authenticate(FakeRequest({'X-Auth-Token': READER_TOKEN}))
    assert principal.uid == 3
    assert not principal.has_permission('WIDGET_EDIT')
