"""
Helmsman runner (dispatch engine).

Runner.run(args, context) turns raw process arguments into command
executions and reports exactly one RunResult.

phases
- extraction
  • every token spelled like a registered global ("--name", "-a", optionally
    with "=value") is pulled out of the stream, in encounter order. a global
    never consumes the following token.
- resolution
  • the first remaining token that is not option-shaped names the
    sub-command; option-shaped tokens before it (or without it) are unknown.
  • option-shaped means r"--?<letter>..." so "-5" and "-" are plain values.
- binding
  • options ("--name value", "--name=value", "-a value", "-a=value", bare
    booleans) and positionals (in order, a variadic one takes the rest) are
    coerced to their declared types. an empty string is a value; only a
    missing or option-shaped next token leaves an option without one.
  • unbound names fall back to the command configuration, then to declared
    defaults (booleans to False); a required option or a positional left
    without value is a fault.
  • every fault of the pass is collected (see Runner.faults).
- execution
  • globals in encounter order, then the sub-command, or the fallback (the
    default command, else the usage command, else nothing). each run is
    awaited before the next one starts. a terminator global stops everything
    queued after it, fallbacks included.

outcomes
- any parse fault: PARSE_ERROR. nothing is executed except the usage
  command, for information only.
- a command raising: COMMAND_ERROR, queued commands after it are skipped.
- anything else raising: GENERAL_ERROR. run() itself never raises.
"""
import difflib
import inspect
import logging
import re
from collections import deque
from collections.abc import Iterable, Sequence

from .arguments import Option
from .commands import GlobalCommand, SubCommand
from .context import Context
from .faults import *
from .utils import *

logger = logging.getLogger(__name__)

# option-shaped prefix: one or two dashes followed by a letter
_SWITCH = re.compile(r"--?[^\W\d_]")
# full option token: <name>[=<value>]
_TOKEN = re.compile(r"(?P<input>--?[^\W\d_](-?[^\W_]+)*)(=(?P<value>.*))?", re.DOTALL)


def _suggest(input, candidates, /):
    try:
        return "did you mean %r?" % difflib.get_close_matches(input, candidates, 1)[0]
    except IndexError:
        return None


class Runner:
    """
    Dispatches raw arguments to a registered set of commands.

    Parameters
    - commands: iterable of GlobalCommand / SubCommand, registered in order.
    - default: Unset | Command, executed when no sub-command is given.
    - usage: Unset | Command, executed with empty args when no sub-command
      and no default is given, and after any parse fault.

    Registration rejects (ValueError) duplicate names and aliases, a
    sub-command named like a global name or alias, and sub-command options
    spelled like a global trigger (the global would always win).
    """

    def __init__(self, commands=(), /, *, default=Unset, usage=Unset):
        if not isinstance(commands, Iterable):
            raise TypeError("runner commands must be iterable")
        for label, command in (("default", default), ("usage", usage)):
            if not isinstance(command, GlobalCommand | SubCommand | Unset):
                raise TypeError(f"runner {label} command must be a global command or a sub-command")

        self._commands = []
        self._globals = {}
        self._triggers = {}
        self._subcommands = {}
        self._default = default
        self._usage = usage
        self._faults = []

        for command in commands:
            self.add_command(command)

    commands = mirror("commands")
    faults = mirror("faults")

    @property
    def default(self):
        return self._default

    @default.setter
    def default(self, command):
        if not isinstance(command, GlobalCommand | SubCommand | Unset):
            raise TypeError("runner default command must be a global command or a sub-command")
        self._default = command

    @property
    def usage(self):
        return self._usage

    @usage.setter
    def usage(self, command):
        if not isinstance(command, GlobalCommand | SubCommand | Unset):
            raise TypeError("runner usage command must be a global command or a sub-command")
        self._usage = command

    @property
    def global_commands(self):
        return tuple(self._globals.values())

    @property
    def sub_commands(self):
        return tuple(self._subcommands.values())

    def add_command(self, command, /):
        """
        Register a command, validating it against the ones already present.
        """
        if not isinstance(command, GlobalCommand | SubCommand):
            raise TypeError("add_command() argument must be a global command or a sub-command")

        if command.name in self._globals or command.name in self._subcommands:
            raise ValueError(f"{command.__typename__} name {command.name!r} is already in use")

        if isinstance(command, GlobalCommand):
            for flag in command.flags:
                if flag in self._triggers:
                    raise ValueError(f"{command.__typename__} {flag!r} is already in use by {self._triggers[flag].name!r}")
                for subcommand in self._subcommands.values():
                    if subcommand.lookup(flag):
                        raise ValueError(
                            f"{command.__typename__} {flag!r} shadows an option of sub-command {subcommand.name!r}"
                        )
            if command.short_alias in self._subcommands:
                raise ValueError(f"{command.__typename__} alias {command.short_alias!r} is already a sub-command name")
            for flag in command.flags:
                self._triggers[flag] = command
            self._globals[command.name] = command
        else:
            if any(command.name == other.short_alias for other in self._globals.values()):
                raise ValueError(f"{command.__typename__} name {command.name!r} is already a global alias")
            for option in command.options:
                for flag in option.flags:
                    if flag in self._triggers:
                        raise ValueError(
                            f"{command.__typename__} option {flag!r} is shadowed by global {self._triggers[flag].name!r}"
                        )
            self._subcommands[command.name] = command

        self._commands.append(command)
        logger.debug("registered %s %r", command.__typename__, command.name)

    def extract(self, args, command, /):
        """
        Inline values given to a registered global command, in encounter
        order, without binding or running anything.

        Hosts use it for globals that must act before the context exists
        (for example the configuration location).
        """
        if self._globals.get(getattr(command, "name", None)) is not command:
            raise ValueError("extract() second argument must be a registered global command")
        values = []
        for token in args:
            if (match := _TOKEN.fullmatch(token)) and self._triggers.get(match["input"]) is command:
                if match["value"] is not None:
                    values.append(match["value"])
        return values

    async def run(self, args=(), context=Unset, /):
        """
        Parse args, execute the resolved commands and classify the outcome.

        Never raises: unexpected failures are logged and reported as
        GENERAL_ERROR. Faults of the run are available from Runner.faults.
        """
        self._faults = []
        try:
            if isinstance(args, str) or not isinstance(args, Iterable):
                raise TypeError("run() first argument must be an iterable of strings")
            args = list(args)
            if not all(isinstance(arg, str) for arg in args):
                raise TypeError("run() first argument must be an iterable of strings")
            if context is Unset:
                context = Context()
            elif not isinstance(context, Context):
                raise TypeError("run() second argument must be a context")
            return await self._run(args, context)
        except Exception as exception:
            logger.exception("unexpected failure while running %r", args)
            self._faults.append(GeneralCommandError(
                "something unexpected occurred: %s" % (str(exception) or type(exception).__name__),
                title="general error",
                code=FaultCode.GENERAL_ERROR,
                hint="check additional logs for more details",
                exception=exception,
            ))
            return RunResult.GENERAL_ERROR

    async def _run(self, args, context):
        queue = []
        rest = []
        terminated = False

        # extraction
        for index, token in enumerate(args, 1):
            if (match := _TOKEN.fullmatch(token)) and (command := self._triggers.get(match["input"])):
                bound = self._bind_global(command, match["input"], match["value"], index, context)
                if bound is not Unset:
                    queue.append((command, bound))
                    terminated |= command.terminator
                continue
            rest.append((index, token))

        # resolution
        subcommand = Unset
        for position, (index, token) in enumerate(rest):
            if _SWITCH.match(token):
                continue
            for before, switch in rest[:position]:
                self._unknown_option(switch, before, self._triggers.keys(), "options of a sub-command go after its name")
            try:
                subcommand = self._subcommands[token]
            except KeyError:
                self._faults.append(UnknownCommandError(
                    "unknown command %r at %s position" % (token, ordinal(index)),
                    title="unknown command",
                    code=FaultCode.UNKNOWN_COMMAND,
                    hint=_suggest(token, self._subcommands.keys()) or "try '--help' to see all available commands",
                    input=token,
                    index=index,
                ))
                break
            queue.append((subcommand, self._bind(subcommand, rest[position + 1:], len(args) + 1, context)))
            logger.debug("resolved sub-command %r", subcommand.name)
            break
        else:
            for index, token in rest:
                self._unknown_option(token, index, self._triggers.keys(), "try '--help' to see all available options")

        # fallback
        if subcommand is Unset and not terminated and not self._faults:
            if isinstance(self._default, SubCommand):
                queue.append((self._default, self._bind(self._default, (), len(args) + 1, context)))
                logger.debug("falling back to default sub-command %r", self._default.name)
            elif isinstance(self._default, GlobalCommand):
                bound = self._bind_global(self._default, self._default.flags[0], None, len(args) + 1, context)
                queue.append((self._default, bound))
                logger.debug("falling back to default global %r", self._default.name)
            elif self._usage is not Unset:
                queue.append((self._usage, {}))
                logger.debug("falling back to usage command %r", self._usage.name)

        if self._faults:
            logger.debug("parse failed with %d fault(s)", len(self._faults))
            if self._usage is not Unset:
                await self._execute(self._usage, {}, context)
            return RunResult.PARSE_ERROR

        # execution
        for command, bound in queue:
            if not await self._execute(command, bound, context):
                return RunResult.COMMAND_ERROR
            if isinstance(command, GlobalCommand) and command.terminator:
                logger.debug("terminated by %r", command.name)
                break

        return RunResult.SUCCESS

    async def _execute(self, command, args, context):
        logger.debug("running %s %r with %r", command.__typename__, command.name, args)
        try:
            if inspect.isawaitable(result := command.run(args, context)):
                await result
        except Exception as exception:
            logger.debug("%s %r failed", command.__typename__, command.name, exc_info=True)
            self._faults.append(DelegatedCommandError(
                "something occurred in %s %r: %s" % (
                    command.__typename__, command.name, str(exception) or type(exception).__name__
                ),
                title="delegated %s error" % command.__typename__,
                code=FaultCode.DELEGATED_ERROR,
                hint="check additional logs for more details",
                command=command,
                exception=exception,
            ))
            return False
        return True

    def _unknown_option(self, token, index, candidates, hint, /):
        if not _TOKEN.fullmatch(token):
            return self._faults.append(MalformedTokenError(
                "bad form of option %r at %s position" % (token, ordinal(index)),
                title="malformed option",
                code=FaultCode.MALFORMED_TOKEN,
                hint="options are spelled --name, --name=value, -a or -a=value",
                input=token,
                index=index,
            ))
        input = _TOKEN.fullmatch(token)["input"]
        self._faults.append(UnknownOptionError(
            "unknown option %r at %s position" % (input, ordinal(index)),
            title="unknown option",
            code=FaultCode.UNKNOWN_OPTION,
            hint=_suggest(input, candidates) or hint,
            input=input,
            index=index,
        ))

    def _coerce(self, argument, raw, input, index, /):
        """
        Coerce one raw value, recording a fault and returning Unset on failure.

        index is Unset for values coming from the command configuration.
        """
        kind = "option" if isinstance(argument, Option) else "positional"
        where = "in configuration" if index is Unset else "at %s position" % ordinal(index)
        try:
            value = argument.type.coerce(raw)
        except ValueError:
            self._faults.append(IncorrectTypeError(
                "%s %r %s expects a %s, got %r" % (kind, input, where, argument.type, raw),
                title="incorrect type",
                code=FaultCode.INCORRECT_TYPE,
                hint="pass a %s value" % argument.type,
                input=input,
                index=index,
                argument=argument,
            ))
            return Unset
        if argument.choices and value not in argument.choices:
            self._faults.append(InvalidChoiceError(
                "invalid choice %r for %s %r %s" % (value, kind, input, where),
                title="invalid choice",
                code=FaultCode.INVALID_CHOICE,
                hint="choose from %s" % ", ".join(map(repr, argument.choices)),
                input=input,
                index=index,
                argument=argument,
            ))
            return Unset
        return value

    def _configured(self, argument, raw, /):
        """
        Coerce a value from the command configuration (a list for repeated
        arguments).
        """
        if getattr(argument, "multiple", False) or getattr(argument, "variadic", False):
            raws = list(raw) if isinstance(raw, Sequence) and not isinstance(raw, str) else [raw]
            values = [self._coerce(argument, item, argument.name, Unset) for item in raws]
            return Unset if Unset in values else values
        return self._coerce(argument, raw, argument.name, Unset)

    def _bind_global(self, command, input, value, index, context, /):
        option = command.argument
        if option is Unset:
            if value is not None:
                self._faults.append(GlobalAssignmentError(
                    "global command %r at %s position cannot take a value" % (input, ordinal(index)),
                    title="global cannot take a value",
                    code=FaultCode.GLOBAL_ASSIGNMENT,
                    hint="remove everything from '=' (for example: %s)" % input,
                    input=input,
                    index=index,
                ))
                return Unset
            return {}

        if value is None:
            config = context.get_command_config(command.name)
            if option.boolean:
                return {option.name: True}
            if option.name in config:
                bound = self._configured(option, config[option.name])
                return Unset if bound is Unset else {option.name: bound}
            if option.default is not Unset:
                return {option.name: option.default}
            if not option.required:
                return {}
            self._faults.append(MissingValueError(
                "missing value for global command %r at %s position" % (input, ordinal(index)),
                title="missing value",
                code=FaultCode.MISSING_VALUE,
                hint="add a value after '=' (for example: %s=<%s>)" % (input, option.name),
                input=input,
                index=index,
            ))
            return Unset

        bound = self._coerce(option, value, input, index)
        return Unset if bound is Unset else {option.name: bound}

    def _bind(self, command, tokens, end, context, /):
        """
        Bind tokens to the options and positionals of a sub-command.

        end is the position right after the last token, used to locate
        missing positionals in messages.
        """
        args = {}
        given = set()
        positionals = deque(command.positionals)
        tokens = deque(tokens)

        while tokens:
            index, token = tokens.popleft()

            if _SWITCH.match(token):
                if not (match := _TOKEN.fullmatch(token)):
                    self._unknown_option(token, index, (), "")
                    continue
                input, value = match["input"], match["value"]
                if (option := command.lookup(input)) is None:
                    candidates = [flag for option in command.options for flag in option.flags]
                    self._unknown_option(
                        token, index, candidates, "try '%s --help' to see all available options" % command.name
                    )
                    continue

                # None: nothing supplied, "" is a value like any other
                if option.boolean:
                    raw = "true" if value is None else value
                elif value is not None:
                    raw = value
                elif tokens and not _SWITCH.match(tokens[0][1]):
                    raw = tokens.popleft()[1]
                else:
                    raw = None

                if raw is None:
                    self._faults.append(MissingValueError(
                        "missing value for option %r at %s position" % (input, ordinal(index)),
                        title="missing value",
                        code=FaultCode.MISSING_VALUE,
                        hint="pass a value after a space or '=' (for example: %s=<%s>)" % (input, option.name),
                        input=input,
                        index=index,
                        argument=option,
                    ))
                    given.add(option.name)
                    continue

                if option.name in given and not option.multiple:
                    self._faults.append(DuplicatedOptionError(
                        "option %r at %s position was already given" % (input, ordinal(index)),
                        title="duplicated option",
                        code=FaultCode.DUPLICATED_OPTION,
                        hint="pass %r only once" % input,
                        input=input,
                        index=index,
                        argument=option,
                    ))
                    continue
                given.add(option.name)

                if (bound := self._coerce(option, raw, input, index)) is Unset:
                    continue
                if option.multiple:
                    args.setdefault(option.name, []).append(bound)
                else:
                    args[option.name] = bound
                continue

            if not positionals:
                self._faults.append(UnexpectedPositionalError(
                    "unexpected positional %r at %s position" % (token, ordinal(index)),
                    title="unexpected positional",
                    code=FaultCode.UNEXPECTED_POSITIONAL,
                    hint="%r takes %s" % (
                        command.name,
                        "%d positional(s)" % len(command.positionals) if command.positionals else "no positionals",
                    ),
                    input=token,
                    index=index,
                ))
                continue

            positional = positionals[0]
            given.add(positional.name)
            if not positional.variadic:
                positionals.popleft()
            if (bound := self._coerce(positional, token, positional.name, index)) is Unset:
                continue
            if positional.variadic:
                args.setdefault(positional.name, []).append(bound)
            else:
                args[positional.name] = bound

        config = context.get_command_config(command.name)

        for option in command.options:
            if option.name in given:
                continue
            if option.name in config:
                bound = self._configured(option, config[option.name])
            elif option.default is not Unset:
                bound = option.default
            elif option.boolean:
                bound = False
            elif option.required:
                self._faults.append(MissingOptionError(
                    "missing required option %r for command %r" % (option.flags[0], command.name),
                    title="missing option",
                    code=FaultCode.MISSING_OPTION,
                    hint="pass it as %s=<%s>" % (option.flags[0], option.name),
                    input=option.flags[0],
                    argument=option,
                ))
                continue
            else:
                continue
            if bound is not Unset:
                args[option.name] = bound

        for positional in positionals:
            if positional.name in given:
                continue
            if positional.name in config:
                bound = self._configured(positional, config[positional.name])
            elif positional.default is not Unset:
                bound = positional.default
            else:
                self._faults.append(MissingPositionalError(
                    "missing positional %s at %s position" % (positional.metavar, ordinal(end)),
                    title="missing positional",
                    code=FaultCode.MISSING_POSITIONAL,
                    hint="pass a value for %s" % positional.metavar,
                    input=positional.name,
                    index=end,
                    argument=positional,
                ))
                continue
            if bound is not Unset:
                args[positional.name] = bound

        return args


__all__ = (
    "Runner",
)
