# Part of Websvc, see LICENSE file for full copyright and licensing details.

from .command import Command, Help, main

from . import server
