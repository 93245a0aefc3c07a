"""
Helmsman built-in commands.

Factories for the commands most programs want; each one returns a fresh
command bound to the runner or metadata it describes.

- help_command:      --help / -h [=<command>]  (terminator)
- usage_command:     short synopsis, meant as Runner.usage
- version_command:   --version / -v            (terminator)
- config_command:    --config=<location>, read by the host before the run
- color_command:     --color
- no_color_command:  --no-color
- log_level_command: --log-level=<level>

Commands that print go through the "printer" service of the context.
"""
import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

from .arguments import Option
from .commands import GlobalCommand, SubCommand
from .printer import PrinterService
from .utils import *

logger = logging.getLogger(__name__)

LEVELS = ("debug", "info", "warning", "error", "critical")


def _printer(context, /):
    if (printer := context.get_service(PrinterService.id, PrinterService)) is None:
        raise LookupError("printer service is not available")
    return printer


def help_command(runner, prog, /, descr=None):
    """
    Build the help global of a runner.

    "--help" shows the program help, "--help=<command>" the help of a
    single sub-command.
    """
    def help(args, context):
        printer = _printer(context)
        if "command" not in args:
            return printer.print(printer.help(runner, prog, descr))
        for command in runner.sub_commands:
            if command.name == args["command"]:
                return printer.print(printer.help(runner, prog, command=command))
        raise ValueError(f"unknown command {args['command']!r}")

    return GlobalCommand(
        help,
        short_alias="h",
        descr="show this help, or the help of a single command",
        argument=Option("command", descr="name of the command to describe"),
        terminator=True,
    )


def usage_command(runner, prog, /):
    """
    Build a usage command printing the runner synopsis to stderr.
    """
    def usage(args, context):
        printer = _printer(context)
        printer.error(printer.usage(runner, prog))

    return SubCommand(usage, descr="show a short usage synopsis")


def version_command(prog, version, /):
    """
    Build the version global printing "<prog> <version>".
    """
    if not isinstance(version, str) or not version.strip():
        raise TypeError("version_command() second argument must be a non-empty string")

    def version_(args, context):
        printer = _printer(context)
        printer.print(Text.assemble((prog, "bold" if printer.colorful else ""), " ", version))

    return GlobalCommand(version_, name="version", short_alias="v", descr="show the version and exit", terminator=True)


def config_command():
    """
    Build the --config=<location> global.

    The host reads the location before the context is assembled (see
    Runner.extract and CLI.execute); when the command runs, the file has
    already been loaded, so it only rejects an empty location.
    """
    def config(args, context):
        if not args["location"]:
            raise ValueError("configuration location cannot be empty")
        logger.debug("configuration loaded from %r", args["location"])

    return GlobalCommand(
        config,
        descr="read the configuration from another file",
        argument=Option("location", required=True, descr="path of a YAML configuration file"),
    )


def color_command():
    """
    Build the --color global, turning styled output back on.
    """
    def color(args, context):
        if (printer := context.get_service(PrinterService.id, PrinterService)) is not None:
            printer.colorful = True

    return GlobalCommand(color, descr="enable colored output")


def no_color_command():
    """
    Build the --no-color global, turning off styled output.
    """
    def no_color(args, context):
        if (printer := context.get_service(PrinterService.id, PrinterService)) is not None:
            printer.colorful = False

    return GlobalCommand(no_color, descr="disable colored output")


def log_level_command(logger="helmsman", /):
    """
    Build the --log-level=<level> global.

    Sets the level of the given logger and makes sure it reports through a
    rich handler on stderr.
    """
    def log_level(args, context):
        target = logging.getLogger(logger)
        target.setLevel(args["level"].upper())
        if not any(isinstance(handler, RichHandler) for handler in target.handlers):
            printer = context.get_service(PrinterService.id, PrinterService)
            console = Console(stderr=True) if printer is None else printer.stderr
            target.addHandler(RichHandler(console=console, show_path=False))

    return GlobalCommand(
        log_level,
        descr="set the logging level",
        argument=Option("level", choices=LEVELS, required=True, descr="one of " + ", ".join(LEVELS)),
    )


__all__ = (
    "LEVELS",
    "help_command",
    "usage_command",
    "version_command",
    "config_command",
    "color_command",
    "no_color_command",
    "log_level_command",
)
