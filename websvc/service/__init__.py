# Part of Websvc, see LICENSE file for full copyright and licensing details.

""" Web service declaration, access control, argument binding and the
server running them.
"""

from . import locator
from . import args
from . import security
from . import model
from . import server

from .locator import WebService, webmethod
