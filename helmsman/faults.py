"""
Helmsman faults (errors) and outcome classification.

Scope
- RunResult: the closed, four-way outcome of one Runner.run invocation.
- FaultCode: canonical, stable numeric identifiers for all user-facing issues.
  Codes are grouped by domain to keep copy consistent and make logs/searches
  predictable.
- CommandException: base type that carries message + options (title, code,
  hint, position, ...) and knows how to render itself with rich.
- ParseException / DelegatedCommandError / GeneralCommandError: one family per
  outcome; each fault class knows the RunResult it classifies to.

UX goals
- Position-first messages: every token-related message includes the ordinal
  position so users can learn by trying (“at third position”).
- Soft but technical language: short titles, one-sentence bodies, a single
  clear hint.
- Lowercased tone with readable styling (configurable via __styles__ in __main__).
"""
from collections import defaultdict
from enum import Enum, IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.text import Text

from .utils import Unset


class RunResult(Enum):
    """
    outcome of one dispatch, exactly one per run.

    - SUCCESS: every executed command completed.
    - PARSE_ERROR: tokens could not be resolved or bound; the resolved command
      did not run.
    - COMMAND_ERROR: a command raised while running.
    - GENERAL_ERROR: anything else (service start-up, configuration, internals).
    """
    SUCCESS = "success"
    PARSE_ERROR = "parse-error"
    COMMAND_ERROR = "command-error"
    GENERAL_ERROR = "general-error"

    @property
    def exit_code(self):
        """
        process exit status for this outcome: 0 on success, 1 otherwise.
        """
        return 0 if self is RunResult.SUCCESS else 1


class FaultCode(IntEnum):
    """
    canonical fault codes used across the cli (stable identifiers).

    grouping (by high-level domain)
    - routing (1110x): UNKNOWN_COMMAND
    - options (1111x): MALFORMED_TOKEN, UNKNOWN_OPTION, GLOBAL_ASSIGNMENT,
      MISSING_VALUE, DUPLICATED_OPTION, MISSING_OPTION
    - positionals (1112x): UNEXPECTED_POSITIONAL, MISSING_POSITIONAL
    - values (1113x): INCORRECT_TYPE, INVALID_CHOICE
    - delegated (1114x): DELEGATED_ERROR
    - general (1119x): GENERAL_ERROR
    """
    # --- routing errors ---
    UNKNOWN_COMMAND       = 11101

    # --- option errors ---
    MALFORMED_TOKEN       = 11111
    UNKNOWN_OPTION        = 11112
    GLOBAL_ASSIGNMENT     = 11113
    MISSING_VALUE         = 11114
    DUPLICATED_OPTION     = 11115
    MISSING_OPTION        = 11116

    # --- positional errors ---
    UNEXPECTED_POSITIONAL = 11121
    MISSING_POSITIONAL    = 11122

    # --- value errors ---
    INCORRECT_TYPE        = 11131
    INVALID_CHOICE        = 11132

    # --- delegated errors ---
    DELEGATED_ERROR       = 11141

    # --- general errors ---
    GENERAL_ERROR         = 11191

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class CommandException(Exception):
    """
    base fault: a message plus read-only options.

    well-known options
    - title, code (FaultCode), hint: rendered by __rich__.
    - prog: program name shown in the header.
    - colorful: style the rendering (defaults to True).
    - index/input/argument/command/exception: context for callers and logs.
    """
    result = RunResult.GENERAL_ERROR

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code", FaultCode.GENERAL_ERROR)

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", True)

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        prog = text(getattr(main, "__prog__", self.options.get("prog", "helmsman")), styler("prog-name"))

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(self.code.normalize(), styler("code")),
            " | ",
            text(self.options.get("title", "error").title(), styler("error-title")),
            " ]"
        )
        message = text(self.message, styler("error-message"))

        if not self.options.get("hint"):
            return Group(header, message)

        hint = Text.assemble(text(" → ", styler("hint-arrow")), text(self.options["hint"], styler("hint")))
        return Group(header, message, hint)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class ParseException(CommandException):
    result = RunResult.PARSE_ERROR


class UnknownCommandError(ParseException): ...
class MalformedTokenError(ParseException): ...
class UnknownOptionError(ParseException): ...
class GlobalAssignmentError(ParseException): ...
class MissingValueError(ParseException): ...
class DuplicatedOptionError(ParseException): ...
class MissingOptionError(ParseException): ...
class UnexpectedPositionalError(ParseException): ...
class MissingPositionalError(ParseException): ...
class IncorrectTypeError(ParseException): ...
class InvalidChoiceError(ParseException): ...


class DelegatedCommandError(CommandException):
    result = RunResult.COMMAND_ERROR


class GeneralCommandError(CommandException):
    result = RunResult.GENERAL_ERROR


__all__ = (
    "RunResult",
    "FaultCode",
    "CommandException",
    "ParseException",
    "UnknownCommandError",
    "MalformedTokenError",
    "UnknownOptionError",
    "GlobalAssignmentError",
    "MissingValueError",
    "DuplicatedOptionError",
    "MissingOptionError",
    "UnexpectedPositionalError",
    "MissingPositionalError",
    "IncorrectTypeError",
    "InvalidChoiceError",
    "DelegatedCommandError",
    "GeneralCommandError",
)
