"""
Helmsman printer service.

PrinterService owns the two rich consoles of a program (stdout and stderr)
and renders help, usage and faults for the built-in commands and the host.

Palette
- Define a mapping named __styles__ in __main__ to override any palette entry.
- When colorful is False (see the no-color built-in, or the 'colorful' key of
  the service configuration), styling is suppressed.
"""
import copy
from collections import defaultdict
from collections.abc import Mapping

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.table import Table
from rich.text import Text

from .services import Service
from .utils import *


class PrinterService(Service):
    """
    Console output for commands.

    Parameters
    - colorful: bool, style the output.
    - stdout/stderr: Unset | rich Console, mostly for capturing output.
    """
    id = "printer"
    run_priority = 100

    def __init__(self, *, colorful=True, stdout=Unset, stderr=Unset):
        super().__init__()
        self._colorful = bool(colorful)
        self._stdout = Console() if stdout is Unset else stdout
        self._stderr = Console(stderr=True) if stderr is Unset else stderr

    def init(self, config, /):
        if config is None:
            return
        if not isinstance(config, Mapping):
            raise TypeError("printer configuration must be a mapping")
        if "colorful" in config:
            if not isinstance(config["colorful"], bool):
                raise TypeError("printer 'colorful' must be a boolean")
            self._colorful = config["colorful"]

    @property
    def colorful(self):
        return self._colorful

    @colorful.setter
    def colorful(self, value):
        self._colorful = bool(value)

    @property
    def stdout(self):
        return self._stdout

    @property
    def stderr(self):
        return self._stderr

    def print(self, *objects, **options):
        self._stdout.print(*objects, **options)

    def error(self, *objects, **options):
        self._stderr.print(*objects, **options)

    def fault(self, fault, /, prog=Unset):
        """
        Render a fault to stderr with the current color setting.
        """
        options = {"colorful": self._colorful}
        if prog is not Unset:
            options["prog"] = prog
        self.error(copy.replace(fault, **options))

    def _palette(self):
        styles = defaultdict(str, {
            # === Head sections ===
            "usage-label": "bold #00E6FF",  # CYAN → signature info color
            "program-name": "bold #FF4D94",  # MAGENTA-PINK → brand pop
            "usage-section": "bold #36C5F0",  # SKY-BLUE → softer than cyan
            "description-section": "italic #A3A3A3",  # Neutral gray

            # === Groups / arguments ===
            "group-label": "bold #FFFFFF",  # Pure white headers
            "argument-description": "#9CA3AF",  # Muted gray
            "option-name": "bold #00E6FF",  # CYAN for options
            "global-name": "bold #22C55E",  # GREEN for globals
            "metavar": "bold #FFD600",  # AMBER for parameters
            "choice": "bold #FF4D94",  # MAGENTA → choices stand out

            # === Commands table ===
            "commands-title": "bold #FFFFFF",
            "commands-table": "#4B5563",  # Slate border
            "command": "bold #36C5F0",  # Sky-blue sub-commands
            "command-description": "#9CA3AF",

            # === Examples / hints ===
            "examples-label": "bold #22C55E",
            "examples-dot": "#22C55E dim",
            "example": "#E5E7EB",
            "hint": "italic #9CE19C",
        } | getattr(__import__("__main__"), "__styles__", {}))

        def styler(style):
            return styles[style] if self._colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not self._colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), styler(style))

        return styler, text

    def _metavar(self, argument, text):
        if argument.choices:
            return Text.assemble("{", Text(",").join(text(repr(choice), "choice") for choice in argument.choices), "}")
        return text(f"<{argument.name}>", "metavar")

    def _flags(self, flags, text, style):
        return Text(" | ").join(text(flag, style) for flag in flags)

    def _globals(self, runner, text):
        inputs = []
        for command in runner.global_commands:
            flags = self._flags(command.flags, text, "global-name")
            if command.argument is not Unset and not command.argument.boolean:
                flags = Text.assemble(flags, "=", self._metavar(command.argument, text))
            inputs.append(Text.assemble("[", flags, "]"))
        return inputs

    def _synopsis(self, runner, prog, text, command=Unset):
        usage = Text()
        usage.append(text("usage", "usage-label")).append(": ")
        usage.append(text(prog, "program-name"))

        inputs = self._globals(runner, text)
        if command is Unset:
            if runner.sub_commands:
                inputs.append(text("<command>", "metavar"))
                inputs.append(text("[options]", "metavar"))
                inputs.append(text("[positionals]", "metavar"))
        else:
            inputs.append(text(command.name, "command"))
            for option in command.options:
                form = self._flags(option.flags, text, "option-name")
                if not option.boolean:
                    form = Text.assemble(form, " ", self._metavar(option, text))
                inputs.append(form if option.required else Text.assemble("[", form, "]"))
            for positional in command.positionals:
                metavar = text(positional.metavar, "metavar")
                inputs.append(metavar if positional.default is Unset else Text.assemble("[", metavar, "]"))

        for input in inputs:
            usage.append(" ").append(input)
        return usage

    def _section(self, label, rows, text):
        section = Text()
        section.append(text(label, "group-label")).append(":\n")
        indent = max((len(name) for name, _ in rows), default=0) + 4
        for name, descr in rows:
            section.append("  ").append(name)
            if descr:
                section.append(" " * (indent - len(name) - 2)).append(text(descr, "argument-description"))
            section.append("\n")
        return section

    def usage(self, runner, prog, /):
        """
        Short synopsis with a pointer to the full help.
        """
        text = self._palette()[1]
        renders = [self._synopsis(runner, prog, text)]
        if any(command.name == "help" for command in runner.global_commands):
            renders.append(text(f"run '{prog} --help' for more information", "hint"))
        return Group(*renders)

    def help(self, runner, prog, /, descr=None, command=Unset):
        """
        Full help of the program, or of a single sub-command.
        """
        styler, text = self._palette()
        renders = [self._synopsis(runner, prog, text, command).append("\n")]

        if command is not Unset:
            if command.descr:
                renders.append(Text.assemble(text(command.descr, "description-section"), "\n"))
            if command.options:
                rows = []
                for option in command.options:
                    name = self._flags(option.flags, text, "option-name")
                    if not option.boolean:
                        name = Text.assemble(name, " ", self._metavar(option, text))
                    rows.append((name, option.descr))
                renders.append(self._section("options", rows, text))
            if command.positionals:
                rows = [(text(positional.metavar, "metavar"), positional.descr) for positional in command.positionals]
                renders.append(self._section("positionals", rows, text))
            if command.examples:
                dot = text(" • ", "examples-dot")
                examples = Text()
                examples.append(text("examples", "examples-label")).append(":\n")
                for example in command.examples:
                    examples.append(dot).append(text(example, "example")).append("\n")
                renders.append(examples)
        else:
            if descr:
                renders.append(Text.assemble(text(descr, "description-section"), "\n"))
            if runner.sub_commands:
                table = Table(
                    "name", "help",
                    title=text("commands", "commands-title"),
                    box=ROUNDED,
                    style=styler("commands-table"),
                )
                for child in runner.sub_commands:
                    table.add_row(
                        text(child.name, "command"),
                        text(child.descr or f"run '{prog} --help={child.name}' for details", "command-description"),
                    )
                renders.append(table)
            if runner.global_commands:
                rows = []
                for child in runner.global_commands:
                    name = self._flags(child.flags, text, "global-name")
                    if child.argument is not Unset and not child.argument.boolean:
                        name = Text.assemble(name, "=", self._metavar(child.argument, text))
                    rows.append((name, child.descr))
                renders.append(self._section("globals", rows, text))

        if isinstance(renders[-1], Text):
            renders[-1].rstrip()
        return Group(*renders)


__all__ = (
    "PrinterService",
)
