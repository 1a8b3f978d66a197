# -*- coding: utf-8 -*-
# Part of Websvc, see LICENSE file for full copyright and licensing details.

from .config import config

from .misc import *
from .func import *
from .json import json_default
