# Part of Websvc, see LICENSE file for full copyright and licensing details.

#-----------------------------------------------------------
# Threaded Server
#-----------------------------------------------------------
import errno
import importlib
import logging
import os
import signal
import sys
import threading
import time

import werkzeug.serving

import websvc
from websvc.tools import config

_logger = logging.getLogger(__name__)

SLEEP_INTERVAL = 60
# seconds granted to running requests on a graceful shutdown
SHUTDOWN_GRACE = 1


def load_server_wide_modules():
    """ Import the modules declaring the web services to serve. """
    for module in config['server_wide_modules']:
        try:
            importlib.import_module(module)
        except Exception:
            _logger.exception('Failed to load server-wide module `%s`.', module)


class ThreadedServer(object):
    """ Serve a WSGI application from a background thread until SIGINT or
    SIGTERM. A second signal exits at once.
    """
    def __init__(self, app):
        self.app = app
        self.interface = config['http_interface'] or '0.0.0.0'
        self.port = config['http_port']
        self.main_thread_id = threading.current_thread().ident
        self.quit_signals_received = 0
        self.httpd = None

    def signal_handler(self, sig, frame):
        if sig not in (signal.SIGINT, signal.SIGTERM):
            return
        self.quit_signals_received += 1
        if self.quit_signals_received > 1:
            # logging is already shut down
            sys.stderr.write("Forced shutdown.\n")
            os._exit(0)
        raise KeyboardInterrupt()

    def run(self, stop=False):
        self.start(stop=stop)
        if not stop:
            try:
                # the signal handler interrupts the sleep
                while not self.quit_signals_received:
                    time.sleep(SLEEP_INTERVAL)
            except KeyboardInterrupt:
                pass
        self.stop()
        return 0

    def start(self, stop=False):
        _logger.debug("Setting signal handlers")
        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, self.signal_handler)
        if config['http_enable'] and not stop:
            self.http_spawn()

    def http_spawn(self):
        self.httpd = ThreadedWSGIServer(self.interface, self.port, self.app)
        threading.Thread(
            target=self.httpd.serve_forever,
            name="websvc.service.httpd",
            daemon=True,
        ).start()

    def pending_threads(self):
        me = threading.current_thread()
        return [
            thread for thread in threading.enumerate()
            if thread is not me and not thread.daemon and thread.ident != self.main_thread_id
        ]

    def stop(self):
        """ Stop accepting requests and give the running ones
        ``SHUTDOWN_GRACE`` seconds to complete.
        """
        _logger.info("Initiating shutdown")
        _logger.info("Hit CTRL-C again or send a second signal to force the shutdown.")
        deadline = time.time() + SHUTDOWN_GRACE
        if self.httpd:
            self.httpd.shutdown()
        for thread in self.pending_threads():
            # short joins keep the main thread responsive to a second signal
            while thread.is_alive() and time.time() < deadline:
                thread.join(0.05)
        logging.shutdown()


#----------------------------------------------------------
# werkzeug server and request handler
#----------------------------------------------------------
class ThreadedWSGIServer(werkzeug.serving.ThreadedWSGIServer):
    """ werkzeug threaded server whose request threads are waited for on
    shutdown.
    """
    # joined by ThreadedServer.stop()
    daemon_threads = False

    def __init__(self, host, port, app):
        super().__init__(host, port, app, handler=RequestHandler)

    def server_bind(self):
        super().server_bind()
        _logger.info('HTTP service (werkzeug) running on %s:%s', self.server_name, self.server_port)

    def handle_error(self, request, client_address):
        exc = sys.exc_info()[1]
        if isinstance(exc, OSError) and exc.errno == errno.EPIPE:
            # client went away mid-response
            return
        _logger.exception('Exception happened during processing of request from %s', client_address)


class RequestHandler(werkzeug.serving.WSGIRequestHandler):
    def setup(self):
        super().setup()
        me = threading.current_thread()
        me.name = 'websvc.service.http.request.%s' % (me.ident,)


server = None


def start(app=None, stop=False):
    """ Start the websvc http server and block until it is stopped.

    :param app: the WSGI application to serve, :data:`websvc.http.root`
        by default
    :param bool stop: set up the server and stop it at once
    :returns: the process exit code
    """
    global server  # noqa: PLW0603

    load_server_wide_modules()
    server = ThreadedServer(app or websvc.http.root)
    return server.run(stop) or 0
