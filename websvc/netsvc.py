# -*- coding: utf-8 -*-
# Part of Websvc, see LICENSE file for full copyright and licensing details.

import logging
import logging.handlers
import os
import platform
import pprint
import sys
import threading
import time
import traceback
import warnings

import werkzeug.serving

from . import release
from . import tools

_logger = logging.getLogger(__name__)

def log(logger, level, prefix, msg, depth=None):
    indent = ''
    indent_after = ' ' * len(prefix)
    for line in (prefix + pprint_repr(msg, depth)).split('\n'):
        logger.log(level, indent + line)
        indent = indent_after

def pprint_repr(msg, depth=None):
    return pprint.pformat(msg, depth=depth)

class WatchedFileHandler(logging.handlers.WatchedFileHandler):
    def __init__(self, filename):
        self.errors = None  # py38
        super().__init__(filename)
        # Unfix bpo-26789, in case the fix is present
        self._builtin_open = None

    def _open(self):
        return open(self.baseFilename, self.mode, encoding=self.encoding, errors=self.errors)

class PerfFilter(logging.Filter):
    """ Append the time spent serving the current request to the werkzeug
    access log lines. The start time is set on the request thread by the
    WSGI application.
    """
    def format_perf(self, request_time):
        return "%.3f" % request_time

    def filter(self, record):
        if hasattr(threading.current_thread(), "perf_t0"):
            request_time = time.time() - threading.current_thread().perf_t0
            record.perf_info = self.format_perf(request_time)
        return True

class ColoredPerfFilter(PerfFilter):
    def format_perf(self, request_time):
        def colorize_time(time, format, low=0.1, high=1):
            if time > high:
                return COLOR_PATTERN % (30 + RED, 40 + DEFAULT, format % time)
            if time > low:
                return COLOR_PATTERN % (30 + YELLOW, 40 + DEFAULT, format % time)
            return format % time
        return colorize_time(request_time, "%.3f", 1, 5)

class ServiceFormatter(logging.Formatter):
    def format(self, record):
        record.pid = os.getpid()
        record.service = getattr(threading.current_thread(), 'service', '?')
        return logging.Formatter.format(self, record)

class ColoredFormatter(ServiceFormatter):
    def format(self, record):
        fg_color, bg_color = LEVEL_COLOR_MAPPING.get(record.levelno, (GREEN, DEFAULT))
        record.levelname = COLOR_PATTERN % (30 + fg_color, 40 + bg_color, record.levelname)
        return ServiceFormatter.format(self, record)

BLACK, RED, GREEN, YELLOW, BLUE, MAGENTA, CYAN, WHITE, _NOTHING, DEFAULT = range(10)
# ANSI escapes, foreground is 30 + color and background 40 + color
RESET_SEQ = "\033[0m"
COLOR_SEQ = "\033[1;%dm"
COLOR_PATTERN = "%s%s%%s%s" % (COLOR_SEQ, COLOR_SEQ, RESET_SEQ)
LEVEL_COLOR_MAPPING = {
    logging.DEBUG: (BLUE, DEFAULT),
    logging.INFO: (GREEN, DEFAULT),
    logging.WARNING: (YELLOW, DEFAULT),
    logging.ERROR: (RED, DEFAULT),
    logging.CRITICAL: (WHITE, RED),
}

LOG_FORMAT = '%(asctime)s %(pid)s %(levelname)s %(service)s %(name)s: %(message)s %(perf_info)s'
SYSLOG_FORMAT = '%s %s:%%(service)s:%%(levelname)s:%%(name)s:%%(message)s' % (
    release.description, release.version)

DEFAULT_LOG_CONFIGURATION = [
    'websvc.http.rpc.request:INFO',
    'websvc.http.rpc.response:INFO',
    ':INFO',
]
PSEUDOCONFIG_MAPPER = {
    'debug_rpc_answer': ['websvc:DEBUG', 'websvc.http.rpc:DEBUG'],
    'debug_rpc': ['websvc:DEBUG', 'websvc.http.rpc.request:DEBUG'],
    'debug': ['websvc:DEBUG'],
    'info': [],
    'warn': ['websvc:WARNING', 'werkzeug:WARNING'],
    'error': ['websvc:ERROR', 'werkzeug:ERROR'],
    'critical': ['websvc:CRITICAL', 'werkzeug:CRITICAL'],
}

def _syslog_handler():
    if os.name == 'nt':
        return logging.handlers.NTEventLogHandler("%s %s" % (release.description, release.version))
    if platform.system() == 'Darwin':
        return logging.handlers.SysLogHandler('/var/run/log')
    return logging.handlers.SysLogHandler('/dev/log')

def _file_handler(logfile):
    """ Handler writing to ``logfile``, ``None`` when its directory cannot
    be created.
    """
    dirname = os.path.dirname(logfile)
    try:
        if dirname and not os.path.isdir(dirname):
            os.makedirs(dirname)
    except OSError:
        sys.stderr.write("ERROR: cannot create the log directory %s, logging to stderr.\n" % dirname)
        return None
    if os.name == 'posix':
        return WatchedFileHandler(logfile)
    return logging.FileHandler(logfile)

def _use_colors(handler):
    if os.name != 'posix' or not isinstance(handler, logging.StreamHandler):
        return False
    if os.environ.get("WEBSVC_PY_COLORS"):
        return True
    # wrapped streams (mod_wsgi and the like) may lack fileno()
    stream = handler.stream
    return hasattr(stream, 'fileno') and os.isatty(stream.fileno())

def logger_levels(log_level=None, log_handler=()):
    """ Return the ``logger:LEVEL`` items to apply, defaults first so the
    ``--log-level`` shortcut and then ``--log-handler`` entries win.
    """
    return DEFAULT_LOG_CONFIGURATION + PSEUDOCONFIG_MAPPER.get(log_level, []) + list(log_handler)

showwarning = None
def init_logger():
    """ Install the websvc logging setup on the root logger. Calling it
    again is a no-op.
    """
    global showwarning  # noqa: PLW0603
    if logging.getLogRecordFactory() is LogRecord:
        return
    logging.setLogRecordFactory(LogRecord)

    # captureWarnings replaces warnings.showwarning, wrap its version
    logging.captureWarnings(True)
    showwarning = warnings.showwarning
    warnings.showwarning = showwarning_with_traceback
    warnings.simplefilter('default', category=DeprecationWarning)

    handler, format = None, LOG_FORMAT
    if tools.config['syslog']:
        handler, format = _syslog_handler(), SYSLOG_FORMAT
    elif tools.config['logfile']:
        handler = _file_handler(tools.config['logfile'])
    if handler is None:
        handler = logging.StreamHandler()

    if _use_colors(handler):
        formatter, perf_filter = ColoredFormatter(format), ColoredPerfFilter()
    else:
        formatter, perf_filter = ServiceFormatter(format), PerfFilter()
        werkzeug.serving._log_add_style = False
    handler.setFormatter(formatter)
    logging.getLogger().addHandler(handler)
    logging.getLogger('werkzeug').addFilter(perf_filter)

    for item in logger_levels(tools.config['log_level'], tools.config['log_handler']):
        name, level = item.strip().split(':')
        logging.getLogger(name).setLevel(getattr(logging, level, logging.INFO))
        _logger.debug('logger level set: "%s"', item)

def showwarning_with_traceback(message, category, filename, lineno, file=None, line=None):
    """ Show warnings with the stack leading to them, import machinery
    frames left out.
    """
    stack = []
    for frame in traceback.extract_stack():
        if 'importlib' not in frame.filename:
            stack.append(frame)
        if (frame.filename, frame.lineno) == (filename, lineno):
            break
    return showwarning(message, category, filename, lineno, file=file,
                       line=''.join(traceback.format_list(stack)))

class LogRecord(logging.LogRecord):
    def __init__(self, name, level, pathname, lineno, msg, args, exc_info, func=None, sinfo=None):
        super().__init__(name, level, pathname, lineno, msg, args, exc_info, func, sinfo)
        self.perf_info = ""
