"""Sample entities and services shared by the test-suite."""

import threading

from passlib.context import CryptContext

from websvc.models import Entity, EntityList, User
from websvc.service import WebService, webmethod
from websvc.tools import synchronized

# Few rounds, so hashing tokens does not slow the suite down.
FAST_CRYPT = CryptContext(schemes=['pbkdf2_sha512'], pbkdf2_sha512__rounds=1000)

ADMIN_TOKEN = '1:admin-secret'
EDITOR_TOKEN = '2:editor-secret'
READER_TOKEN = '3:reader-secret'


class Widget(Entity):
    _fields = ('Title', 'Price', 'Secret', 'OwnerID')
    _exposed_fields = ('ID', 'Title', 'Price')

    def can_view(self, principal):
        return self.OwnerID is None or principal.uid == self.OwnerID or principal.has_permission('ADMIN')


class Gadget(Widget):
    """No converter of its own: responses fall back to the Entity one."""


class Opaque:
    """Nothing converts it."""

    def __str__(self):
        return '"opaque"'


class EchoService(WebService):
    _name = 'echo'
    _public_methods = ('ping', 'add', 'flags', 'nothing', 'items', 'opaque')

    def ping(self, name='world'):
        return name

    def add(self, a: int, b: int = 1):
        return a + b

    def flags(self, on: bool, ratio: float = 1.0):
        return {'on': on, 'ratio': ratio}

    def nothing(self):
        return None

    def items(self):
        return [1, 'two', {'three': 3}]

    def opaque(self):
        return Opaque()

    def whoami(self):
        return 'nobody'


class WidgetService(WebService):
    _name = 'widget'
    _allowed_methods = {
        'view': 'GET',
        'listing': 'get',
        'rename': {'type': 'POST', 'perm': 'WIDGET_EDIT'},
        'upload': 'POST',
        'label': 'GET',
    }

    def __init__(self, repository=None):
        self.repository = repository
        self._lock = threading.RLock()
        self.renamed = 0

    def view(self, widget: Widget):
        return widget

    def listing(self):
        return self.repository.search('Widget')

    @synchronized()
    def rename(self, widget: Widget, Title):
        widget.Title = Title
        self.renamed += 1
        return widget

    def upload(self, file, name='upload'):
        return {'name': name, 'size': len(file)}

    def label(self, widget: Widget = None, *, prefix='#'):
        if widget is None:
            return prefix
        return '%s%s' % (prefix, widget.ID)

    def secret(self):
        return 'never listed'


class NoteService(WebService):
    _name = 'note'

    @webmethod('GET', public=True)
    def count(self):
        return 3

    @webmethod('POST', perm='NOTE_EDIT')
    def save(self, Title):
        return Title


class OpenService:
    """A plain object, without any declaration."""

    def hello(self):
        return 'hello'


def make_users():
    users = []
    for uid, login, secret, perms in [
        (1, 'admin', 'admin-secret', {'ADMIN'}),
        (2, 'editor', 'editor-secret', {'WIDGET_EDIT'}),
        (3, 'reader', 'reader-secret', set()),
    ]:
        user = User(ID=uid, Login=login, Permissions=perms)
        user.set_token(secret, ctx=FAST_CRYPT)
        users.append(user)
    return users


def make_widgets():
    return EntityList([
        Widget(ID=5, Title='Spanner', Price=10, Secret='s1'),
        Widget(ID=6, Title='Private', Price=20, Secret='s2', OwnerID=3),
        Gadget(ID=5, Title='Gizmo', Price=30, Secret='s3'),
        Gadget(ID=8, Title='Hidden', Price=40, Secret='s4', OwnerID=3),
    ])
