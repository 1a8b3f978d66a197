"""Configuration and command line entry points."""

import pytest

from websvc.cli.command import Help, commands, main
from websvc.netsvc import logger_levels
from websvc.tools.config import configmanager


def test_commands_registered():
    assert {'help', 'server'} <= set(commands)


def test_help_lists_commands(capsys):
    Help().run([])
    out = capsys.readouterr().out
    assert 'server' in out and 'Start the websvc server' in out


def test_unknown_command():
    with pytest.raises(SystemExit):
        main(['frobnicate'])


def test_config_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv('WEBSVC_RC', str(tmp_path / 'missing.rc'))
    config = configmanager()
    assert config['http_port'] == 8080
    assert config['json_prefix'] == 'jsonservice'
    assert config['xml_prefix'] == 'xmlservice'
    assert config['auth_header'] == 'X-Auth-Token'
    assert config['server_wide_modules'] == []


def test_config_command_line(tmp_path, monkeypatch):
    monkeypatch.setenv('WEBSVC_RC', str(tmp_path / 'missing.rc'))
    config = configmanager()
    config._parse_config(['-p', '9000', '--load', 'shop.services, shop.more', '--no-http',
                          '--log-handler', 'websvc.http:DEBUG'])
    assert config['http_port'] == 9000
    assert config['server_wide_modules'] == ['shop.services', 'shop.more']
    assert config['http_enable'] is False
    assert config['log_handler'] == ['websvc.http:DEBUG']


def test_config_file_values_cast(tmp_path):
    rc = tmp_path / 'websvc.rc'
    rc.write_text('[options]\nhttp_port = 8123\nhttp_enable = False\nxml_prefix = xml\nload = ignored\n')
    config = configmanager(fname=str(rc))
    assert config['http_port'] == 8123
    assert config['http_enable'] is False
    assert config['xml_prefix'] == 'xml'


def test_config_save(tmp_path):
    rc = tmp_path / 'conf' / 'websvc.rc'
    config = configmanager(fname=str(rc))
    config['http_port'] = 8200
    config.save(['http_port', 'server_wide_modules'])
    text = rc.read_text()
    assert 'http_port = 8200' in text
    assert 'server_wide_modules = ' in text


def test_logger_levels_order():
    levels = logger_levels('debug_rpc', ['werkzeug:ERROR'])
    assert levels[-1] == 'werkzeug:ERROR'
    assert levels.index(':INFO') < levels.index('websvc.http.rpc.request:DEBUG')
    assert logger_levels('nope') == logger_levels()
