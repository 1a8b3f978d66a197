# Part of Websvc, see LICENSE file for full copyright and licensing details.

"""
Websvc - Server
serves Python objects as JSON and XML web services.
"""

import logging
import os
import sys
from pathlib import Path

import websvc

from .command import Command

__author__ = websvc.release.author
__version__ = websvc.release.version

_logger = logging.getLogger('websvc')


def main(args):
    check_root_user()
    websvc.tools.config.parse_config(args, setup_logging=True)
    report_configuration()

    config = websvc.tools.config
    websvc.service.server.load_server_wide_modules()

    repository = websvc.models.MemoryRepository()
    env = websvc.api.Environment(
        websvc.service.locator.ServiceLocator.from_registry(),
        repository=repository,
        authenticator=websvc.service.security.TokenAuthenticator(repository, header=config['auth_header']),
    )
    if not env.services:
        _logger.warning("No web service loaded, use --load to import the modules declaring them")
    rc = websvc.service.server.start(websvc.http.Application(env))
    sys.exit(rc)


class Server(Command):
    """Start the websvc server (default command)"""
    def run(self, args):
        websvc.tools.config.parser.prog = f'{Path(sys.argv[0]).name} {self.name}'
        main(args)


def check_root_user():
    """ Warn if the process's user is 'root' (on POSIX system)."""
    if os.name == 'posix':
        import getpass
        if getpass.getuser() == 'root':
            sys.stderr.write("Running as user 'root' is a security risk.\n")


def report_configuration():
    """ Log the server version and config values.

    This function assumes the configuration has been init
    """
    config = websvc.tools.config
    _logger.info("Websvc version %s", __version__)
    if os.path.isfile(config.rcfile):
        _logger.info("Using configuration file at " + config.rcfile)
    if config['server_wide_modules']:
        _logger.info('service modules: %s', ', '.join(config['server_wide_modules']))
    _logger.info('json services under /%s, xml services under /%s', config['json_prefix'], config['xml_prefix'])
