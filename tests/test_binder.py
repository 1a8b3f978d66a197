"""Parameter binding and method invocation.

Invariants:
    - A required parameter that cannot be bound is always an InternalError
      naming it, never a silent None
    - Entity parameters bind only records the caller may view
    - ``file`` receives the raw body of POST requests
"""

import pytest
from werkzeug.exceptions import NotFound

from websvc.exceptions import InternalError
from websvc.models import Kind
from websvc.service.model import ServiceCall, bind_params, describe_method, dispatch, get_method
from websvc.service.security import ANONYMOUS, Principal

from tests.common import EchoService, Gadget, Widget, WidgetService

READER = Principal(3, 'reader')
OTHER = Principal(4, 'other')


# -- Signatures ------------------------------------------------------------------

def test_describe_method():
    specs = describe_method(WidgetService().label)
    assert [spec.name for spec in specs] == ['widget', 'prefix']
    widget, prefix = specs
    assert widget.kind is Kind.ENTITY and widget.annotation is Widget and widget.optional
    assert prefix.keyword_only and prefix.default == '#'


def test_describe_method_skips_variadics():
    def method(a, *args, b: int = 2, **kwargs):
        pass
    assert [(spec.name, spec.kind) for spec in describe_method(method)] == [
        ('a', Kind.OTHER), ('b', Kind.SCALAR),
    ]


def test_describe_method_unresolvable_annotation():
    def method(a: 'Missing', w: 'Widget'):  # noqa: F821
        pass
    a, w = describe_method(method)
    assert a.kind is Kind.OTHER
    assert w.kind is Kind.ENTITY and w.annotation is Widget


# -- Binding ---------------------------------------------------------------------

def test_bind_by_name():
    params, kwargs = bind_params(EchoService().ping, {'name': 'Bob'})
    assert params == ['Bob'] and kwargs == {}


def test_default_used_when_missing():
    params, _ = bind_params(EchoService().ping, {})
    assert params == ['world']


def test_missing_required_parameter():
    with pytest.raises(InternalError) as exc:
        bind_params(EchoService().add, {'b': '2'}, method_name='add')
    assert exc.value.status == 500
    assert str(exc.value) == 'Service method add expects parameter a'


def test_scalars_coerced():
    params, _ = bind_params(EchoService().add, {'a': '40', 'b': '2'})
    assert params == [40, 2]
    params, _ = bind_params(EchoService().flags, {'on': 'yes', 'ratio': '0.5'})
    assert params == [True, 0.5]


def test_scalars_from_json_untouched():
    params, _ = bind_params(EchoService().add, {'a': 40})
    assert params == [40, 1]


def test_bad_scalar():
    with pytest.raises(InternalError):
        bind_params(EchoService().add, {'a': 'forty'})


def test_file_gets_post_body():
    service = WidgetService()
    params, _ = bind_params(service.upload, {}, body=b'\x00\x01', request_type='POST')
    assert params == [b'\x00\x01', 'upload']


def test_file_not_bound_on_get():
    with pytest.raises(InternalError):
        bind_params(WidgetService().upload, {}, body=b'', request_type='GET')


def test_keyword_only_passed_as_kwargs():
    params, kwargs = bind_params(WidgetService().label, {'prefix': 'No.'})
    assert params == [None] and kwargs == {'prefix': 'No.'}


# -- Entity parameters -----------------------------------------------------------

def test_entity_resolved(repository):
    params, _ = bind_params(
        WidgetService().view, {'WidgetID': '5', 'WidgetType': 'Gadget'},
        principal=ANONYMOUS, repository=repository,
    )
    assert isinstance(params[0], Gadget)
    assert params[0].Title == 'Gizmo'


def test_entity_raw_name_keys(repository):
    params, _ = bind_params(
        WidgetService().view, {'widgetID': 5, 'widgetType': 'Widget'}, repository=repository,
    )
    assert params[0].Title == 'Spanner'


def test_entity_not_viewable_is_unbound(repository):
    args = {'WidgetID': '8', 'WidgetType': 'Gadget'}
    params, _ = bind_params(WidgetService().view, args, principal=READER, repository=repository)
    assert params[0].Title == 'Hidden'
    with pytest.raises(InternalError) as exc:
        bind_params(WidgetService().view, args, principal=OTHER, repository=repository, method_name='view')
    assert str(exc.value) == 'Service method view expects parameter widget'


def test_entity_not_viewable_falls_back_to_default(repository):
    args = {'WidgetID': '8', 'WidgetType': 'Gadget'}
    params, kwargs = bind_params(WidgetService().label, args, principal=OTHER, repository=repository)
    assert params == [None] and kwargs == {'prefix': '#'}


@pytest.mark.parametrize('args', [
    {'WidgetID': '5'},
    {'WidgetType': 'Widget'},
    {'WidgetID': '99', 'WidgetType': 'Widget'},
    {'WidgetID': '5', 'WidgetType': 'Unknown'},
    {'widget': '5'},
])
def test_entity_unresolved(repository, args):
    with pytest.raises(InternalError):
        bind_params(WidgetService().view, args, repository=repository)


# -- Lookup and dispatch ---------------------------------------------------------

@pytest.mark.parametrize('name', ['_lock', '__init__', 'web_enabled_methods', 'public_web_methods', 'renamed', ''])
def test_get_method_refuses(name):
    with pytest.raises(NotFound):
        get_method(WidgetService(), 'widget', name)


def test_dispatch_returns_raw_result(env):
    call = ServiceCall('Echo', 'add', query={'a': '1', 'b': '2'})
    assert dispatch(env, call) == 3


def test_dispatch_unknown_service(env):
    with pytest.raises(NotFound):
        dispatch(env, ServiceCall('nope', 'ping'))


def test_dispatch_synchronized_method(env):
    call = ServiceCall('widget', 'rename', verb='POST', form={'WidgetID': '5', 'WidgetType': 'Widget', 'Title': 'Wrench'},
                       body=b'WidgetID=5&WidgetType=Widget&Title=Wrench',
                       principal=Principal(2, 'editor', frozenset({'WIDGET_EDIT'})))
    widget = dispatch(env, call)
    assert widget.Title == 'Wrench'
    assert env['widget'].renamed == 1
