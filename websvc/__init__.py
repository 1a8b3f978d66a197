# -*- coding: utf-8 -*-
# Part of Websvc, see LICENSE file for full copyright and licensing details.

""" Websvc core library. """

import sys
MIN_PY_VERSION = (3, 10)
MAX_PY_VERSION = (3, 13)
assert sys.version_info > MIN_PY_VERSION, f"Outdated python version detected, Websvc requires Python >= {'.'.join(map(str,  MIN_PY_VERSION))} to run."

# ----------------------------------------------------------
# Imports
# ----------------------------------------------------------
from . import release
from . import tools
from . import netsvc
from . import exceptions
from . import models
from . import service
from . import serialisers
from . import api
from . import http
from . import cli
