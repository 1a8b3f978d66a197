# Part of Websvc, see LICENSE file for full copyright and licensing details.

import configparser as configparser
import logging
import optparse
import os
import warnings

import websvc

from .. import release
from .misc import str2bool

from passlib.context import CryptContext
crypt_context = CryptContext(schemes=['pbkdf2_sha512', 'plaintext'],
                             deprecated=['plaintext'],
                             pbkdf2_sha512__rounds=600_000)

_logger = logging.getLogger(__name__)

LOG_LEVELS = ['info', 'debug_rpc', 'warn', 'debug', 'debug_rpc_answer', 'error', 'critical']


class MyOption(optparse.Option, object):
    """ optparse Option with two additional attributes.

    The list of command line options (getopt.Option) is used to create the
    list of the configuration file options. When reading the file, and then
    reading the command line arguments, we don't want optparse.parse results
    to override the configuration file values. But if we provide default
    values to optparse, optparse will return them and we can't know if they
    were really provided by the user or not. A solution is to not use
    optparse's default attribute, but use a custom one (that will be copied
    to create the default values of the configuration file).

    """
    def __init__(self, *opt, **attrs):
        self.my_default = attrs.pop('my_default', None)
        super(MyOption, self).__init__(*opt, **attrs)


class configmanager(object):
    def __init__(self, fname=None):
        """Constructor.

        :param fname: a shortcut allowing to instantiate :class:`configmanager`
                      from Python code without resorting to env variable
        """
        # Options not exposed on the command line. Command line options will be added
        # from optparse's parser.
        self.options = {
            'root_path': None,
        }

        # dictionary mapping option destination (keys in self.options) to MyOptions.
        self.casts = {}

        self.config_file = fname

        version = "%s %s" % (release.description, release.version)
        self.parser = parser = optparse.OptionParser(version=version, option_class=MyOption)

        parser.add_option("-c", "--config", dest="config", help="specify alternate config file")
        parser.add_option("-s", "--save", action="store_true", dest="save", default=False,
                          help="save configuration to ~/.websvcrc (or to the file given with -c)")
        parser.add_option("--load", dest="server_wide_modules", my_default='',
                          help="Comma-separated list of python modules declaring the web services to serve.")

        group = optparse.OptionGroup(parser, "HTTP Service Configuration")
        group.add_option("--http-interface", dest="http_interface", my_default='',
                         help="Listen interface address for HTTP services. "
                              "Keep empty to listen on all interfaces (0.0.0.0)")
        group.add_option("-p", "--http-port", dest="http_port", my_default=8080,
                         help="Listen port for the main HTTP service", type="int", metavar="PORT")
        group.add_option("--no-http", dest="http_enable", action="store_false", my_default=True,
                         help="Disable the HTTP service")
        group.add_option("--json-prefix", dest="json_prefix", my_default='jsonservice',
                         help="First URL segment of the services answering in JSON")
        group.add_option("--xml-prefix", dest="xml_prefix", my_default='xmlservice',
                         help="First URL segment of the services answering in XML")
        group.add_option("--auth-header", dest="auth_header", my_default='X-Auth-Token',
                         help="Request header carrying the '<uid>:<token>' API credentials")
        group.add_option("--max-content-length", dest="max_content_length", my_default=128 * 1024 * 1024,
                         type="int", help="Maximum size in bytes of a request body")
        parser.add_option_group(group)

        group = optparse.OptionGroup(parser, "Logging Configuration")
        group.add_option("--logfile", dest="logfile", help="file where the server log will be stored", my_default=None)
        group.add_option("--syslog", action="store_true", dest="syslog", my_default=False,
                         help="Send the log to the syslog server")
        group.add_option('--log-handler', action="append", default=[], my_default=[], metavar="PREFIX:LEVEL",
                         help='setup a handler at LEVEL for a given PREFIX. An empty PREFIX indicates the root logger. '
                              'This option can be repeated. Example: "websvc.http:DEBUG" or "werkzeug:CRITICAL"')
        group.add_option('--log-level', dest='log_level', type='choice', choices=LOG_LEVELS, my_default='info',
                         help='specify the level of the logging. Accepted values: %s.' % (LOG_LEVELS,))
        parser.add_option_group(group)

        # Copy all optparse options (i.e. MyOption) into self.options.
        for group in parser.option_groups + [parser]:
            for option in group.option_list:
                if option.dest not in self.options:
                    self.options[option.dest] = option.my_default
                    self.casts[option.dest] = option

        # generate default config
        self._parse_config()

    def parse_config(self, args: list[str] | None = None, *, setup_logging: bool | None = None) -> None:
        """ Parse the configuration file (if any) and the cli arguments.

        This function init websvc.tools.config, it must be called before
        the server is started.

        Typical usage of this function:

            websvc.tools.config.parse_config(sys.argv[1:])
        """
        opt = self._parse_config(args)
        if setup_logging is not False:
            websvc.netsvc.init_logger()
            if setup_logging is None:
                warnings.warn(
                    "It's recommended to specify wheter"
                    " you want Websvc to setup its own logging"
                    " (or want to handle it yourself)",
                    category=PendingDeprecationWarning,
                    stacklevel=2,
                )
        return opt

    def _parse_config(self, args=None):
        if args is None:
            args = []
        opt, args = self.parser.parse_args(args)

        def die(cond, msg):
            if cond:
                self.parser.error(msg)

        die(args, "unrecognized parameters: '%s'" % " ".join(args))

        # place/search the config file on Win32 near the server installation
        if os.name == 'nt':
            rcfilepath = os.path.join(os.path.abspath(os.path.dirname(__file__)), 'websvc.conf')
        else:
            rcfilepath = os.path.expanduser('~/.websvcrc')

        self.rcfile = os.path.abspath(
            self.config_file or opt.config or os.environ.get('WEBSVC_RC') or rcfilepath)
        self.load()

        # Verify that we want to log or not, if not the output will go to stdout
        if self.options['logfile'] in ('None', 'False'):
            self.options['logfile'] = False
        keys = [
            'http_interface', 'http_port', 'http_enable', 'json_prefix', 'xml_prefix',
            'auth_header', 'max_content_length', 'logfile', 'syslog', 'log_level',
            'server_wide_modules',
        ]
        for arg in keys:
            # Copy the command-line argument (except the special case for log_handler, due to
            # action=append requiring a real default, so we cannot use the my_default workaround)
            if getattr(opt, arg, None) is not None:
                self.options[arg] = getattr(opt, arg)
            # ... or keep, but cast, the config file value.
            elif isinstance(self.options[arg], str) and self.casts[arg].type in optparse.Option.TYPE_CHECKER:
                self.options[arg] = optparse.Option.TYPE_CHECKER[self.casts[arg].type](self.casts[arg], arg, self.options[arg])

        if isinstance(self.options['log_handler'], str):
            self.options['log_handler'] = self.options['log_handler'].split(',')
        self.options['log_handler'] = list(self.options['log_handler']) + opt.log_handler

        if isinstance(self.options['http_enable'], str):
            self.options['http_enable'] = str2bool(self.options['http_enable'], True)
        if isinstance(self.options['syslog'], str):
            self.options['syslog'] = str2bool(self.options['syslog'], False)

        self.options['server_wide_modules'] = [
            m.strip() for m in self.options['server_wide_modules'].split(',') if m.strip()
        ] if isinstance(self.options['server_wide_modules'], str) else self.options['server_wide_modules']

        if opt.save:
            self.save()
        return opt

    def load(self):
        p = configparser.RawConfigParser()
        try:
            p.read([self.rcfile])
            for (name, value) in p.items('options'):
                if value == 'True' or value == 'true':
                    value = True
                if value == 'False' or value == 'false':
                    value = False
                self.options[name] = value
        except IOError:
            pass
        except configparser.NoSectionError:
            pass

    def save(self, keys=None):
        p = configparser.RawConfigParser()
        rc_exists = os.path.exists(self.rcfile)
        if rc_exists and keys:
            p.read([self.rcfile])
        if not p.has_section('options'):
            p.add_section('options')
        for opt in sorted(self.options):
            if keys is not None and opt not in keys:
                continue
            if opt in ('version', 'language', 'save', 'config', 'root_path'):
                continue
            value = self.options[opt]
            if isinstance(value, list):
                value = ','.join(value)
            elif value is None:
                value = ''
            p.set('options', opt, value)

        # try to create the directories and write the file
        try:
            if not rc_exists and not os.path.exists(os.path.dirname(self.rcfile)):
                os.makedirs(os.path.dirname(self.rcfile))
            try:
                with open(self.rcfile, "w") as fp:
                    p.write(fp)
                if not rc_exists:
                    os.chmod(self.rcfile, 0o600)
            except IOError:
                _logger.warning("Unable to write the configuration file %r", self.rcfile)
        except OSError:
            _logger.warning("Unable to create the directory for the configuration file %r", self.rcfile)

    def get(self, key, default=None):
        return self.options.get(key, default)

    def __setitem__(self, key, value):
        self.options[key] = value

    def __getitem__(self, key):
        return self.options[key]


config = configmanager()
