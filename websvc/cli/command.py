# Part of Websvc, see LICENSE file for full copyright and licensing details.
import sys
from pathlib import Path

commands = {}


class Command:
    name = None

    def __init_subclass__(cls):
        cls.name = cls.name or cls.__name__.lower()
        commands[cls.name] = cls


WEBSVC_HELP = """\
Websvc CLI, use '{websvc_bin} --help' for regular server options.

Available commands:
    {command_list}

Use '{websvc_bin} <command> --help' for individual command help."""


class Help(Command):
    """ Display list of available commands """
    def run(self, args):
        padding = max([len(cmd) for cmd in commands]) + 2
        command_list = "\n    ".join([
            "    {}{}".format(name.ljust(padding), (command.__doc__ or "").strip())
            for name, command in sorted(commands.items())
        ])
        print(WEBSVC_HELP.format(
            websvc_bin=Path(sys.argv[0]).name,
            command_list=command_list
        ))


def main(args=None):
    args = sys.argv[1:] if args is None else args

    # default to `server`
    command = "server"

    if len(args) and not args[0].startswith("-"):
        command = args[0]
        args = args[1:]

    if command in commands:
        i = commands[command]()
        i.run(args)
    else:
        sys.exit('Unknown command %r' % (command,))
