r"""
Helmsman command model.

Overview
- Command: base of a closed, two-variant union wrapping a callable
  callback(args, context). The callback may be a plain function or a
  coroutine function; the runner awaits whatever it returns.
- GlobalCommand: triggered by "--name" or "-alias" anywhere in the token
  stream. It takes no positionals; it may declare a single inline
  'argument' option ("--log-level=debug"). A terminator global (help,
  version) stops everything queued after it.
- SubCommand: selected by the first non-global, non-option token; owns
  ordered options and positionals.
- global_command / sub_command: decorator forms of the two variants.

Constraints (checked at construction)
- names follow r"[^\W\d_](-?[^\W_]+)*"; a name defaults to the callback's
  __name__ with underscores turned into hyphens.
- the description defaults to the first paragraph of the callback docstring.
- a sub-command declares each option name/alias and positional name once; at
  most one positional is variadic and it comes last.

Uniqueness across a command set (names, aliases, global triggers shadowing
sub-command options) is checked by Runner.add_command.
"""
import functools
import inspect
import operator
import re

from rich.text import Text

from .arguments import Option, Positional
from .utils import *


class CommandType(type):
    """
    Metaclass exposing __introspectable__ fields as read-only properties and
    providing stable __repr__/__rich_repr__, with a hyphenated __typename__
    (e.g. "sub-command") for messages.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _process_metadata(cls, callback, metadata):
    """
    Internal: validate the callback and fill in 'name'/'descr' defaults.
    """
    if not callable(callback):
        raise TypeError(f"{cls.__typename__} callback must be callable")

    if (name := metadata["name"]) is Unset:
        try:
            name = callback.__name__.strip("_").replace("_", "-")
        except AttributeError:
            raise TypeError(f"{cls.__typename__} callback has no name, pass one explicitly") from None
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} name must be a string")
    elif not re.fullmatch(r"[^\W\d_](-?[^\W_]+)*", name := name.strip()):
        raise ValueError(f"{cls.__typename__} name {name!r} must be a valid shell-style name (unicodes are allowed)")
    metadata["name"] = name

    if (descr := metadata["descr"]) is Unset:
        # first paragraph of the docstring, folded to one line
        descr = " ".join((inspect.getdoc(callback) or "").split("\n\n")[0].split()) or None
    elif not isinstance(descr, str | Text):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = descr


class Command(metaclass=CommandType):
    """
    Common base of GlobalCommand and SubCommand.

    Not meant to be instantiated directly: the runner only accepts one of the
    two variants.
    """

    __introspectable__ = (
        "name",
        "descr",
    )

    def __init__(self, callback, /, **metadata):
        _process_metadata(type(self), callback, metadata)
        self._callback = callback
        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    def __init_subclass__(cls, **options):
        super().__init_subclass__(**options)
        if cls.__module__ != __name__:
            raise TypeError(f"type {Command.__name__!r} is not an acceptable base type")

    @property
    def callback(self):
        return self._callback

    def run(self, args, context, /):
        """
        Invoke the callback with the bound arguments and the run context.

        Returns whatever the callback returns, which may be an awaitable.
        """
        return self._callback(args, context)


class GlobalCommand(Command):
    """
    Command triggered by "--name" or "-alias" anywhere in the token stream.

    Parameters
    - callback: callable(args, context).
    - name: Unset | str, defaults from the callback name.
    - short_alias: Unset | str, a single letter.
    - descr: Unset | str, defaults from the callback docstring.
    - argument: Unset | Option, an inline-only value ("--name=value") bound
      under the option's name. Multiple options are not supported here.
    - terminator: bool, nothing queued after this command executes.
    """

    __introspectable__ = (
        "name",
        "short_alias",
        "descr",
        "argument",
        "terminator",
    )

    def __init__(
            self,
            callback,
            /,
            name=Unset,
            short_alias=Unset,
            descr=Unset,
            argument=Unset,
            *,
            terminator=False,
    ):
        if not isinstance(short_alias, str | Unset):
            raise TypeError(f"{GlobalCommand.__typename__} 'short_alias' must be a string")
        elif isinstance(short_alias, str) and not re.fullmatch(r"[^\W\d_]", short_alias):
            raise ValueError(f"{GlobalCommand.__typename__} 'short_alias' must be a single letter")

        if not isinstance(argument, Option | Unset):
            raise TypeError(f"{GlobalCommand.__typename__} 'argument' must be an option")
        elif isinstance(argument, Option) and argument.multiple:
            raise ValueError(f"{GlobalCommand.__typename__} 'argument' cannot be multiple")

        super().__init__(
            callback,
            name=name,
            short_alias=short_alias,
            descr=descr,
            argument=argument,
            terminator=bool(terminator),
        )

    @property
    def flags(self):
        """
        Command-line spellings of this global, long form first.
        """
        if self._short_alias is Unset:
            return ("--" + self._name,)
        return "--" + self._name, "-" + self._short_alias


class SubCommand(Command):
    """
    Command selected by name, with its own options and positionals.

    Parameters
    - callback: callable(args, context).
    - name: Unset | str, defaults from the callback name.
    - descr: Unset | str, defaults from the callback docstring.
    - options: iterable of Option.
    - positionals: iterable of Positional, in binding order.
    - examples: iterable of str, shown by help.
    """

    __introspectable__ = (
        "name",
        "descr",
        "options",
        "positionals",
        "examples",
    )

    def __init__(
            self,
            callback,
            /,
            name=Unset,
            descr=Unset,
            options=(),
            positionals=(),
            examples=(),
    ):
        options = tuple(options)
        positionals = tuple(positionals)
        examples = tuple(examples)

        switches = {}
        names = set()
        for option in options:
            if not isinstance(option, Option):
                raise TypeError(f"{SubCommand.__typename__} options must be options")
            if option.name in names:
                raise ValueError(f"{SubCommand.__typename__} argument name {option.name!r} is declared twice")
            names.add(option.name)
            for flag in option.flags:
                if flag in switches:
                    raise ValueError(f"{SubCommand.__typename__} option {flag!r} is declared twice")
                switches[flag] = option

        for index, positional in enumerate(positionals, 1):
            if not isinstance(positional, Positional):
                raise TypeError(f"{SubCommand.__typename__} positionals must be positionals")
            if positional.name in names:
                raise ValueError(f"{SubCommand.__typename__} argument name {positional.name!r} is declared twice")
            names.add(positional.name)
            if positional.variadic and index != len(positionals):
                raise ValueError(f"{SubCommand.__typename__} variadic positional {positional.name!r} must be the last one")

        for example in examples:
            if not isinstance(example, str):
                raise TypeError(f"{SubCommand.__typename__} examples must be strings")

        super().__init__(
            callback,
            name=name,
            descr=descr,
            options=options,
            positionals=positionals,
            examples=examples,
        )
        self._switches = switches

    def lookup(self, flag, /):
        """
        Return the option spelled as flag ("--name" or "-a"), or None.
        """
        return self._switches.get(flag)


def global_command(callback=Unset, /, *args, **kwargs):
    """
    Create a GlobalCommand, or return a decorator to build it later.

        @global_command(short_alias="q", terminator=True)
        def quiet(args, context): ...
    """
    @rename("global_command")
    def wrapper(callback, /):
        if not callable(callback):
            raise TypeError("@global_command() must be applied to a callable")
        return GlobalCommand(callback, *args, **kwargs)

    return wrapper(callback) if callback is not Unset else wrapper


def sub_command(callback=Unset, /, *args, **kwargs):
    """
    Create a SubCommand, or return a decorator to build it later.

        @sub_command(positionals=[Positional("message", variadic=True)])
        def greeter(args, context): ...
    """
    @rename("sub_command")
    def wrapper(callback, /):
        if not callable(callback):
            raise TypeError("@sub_command() must be applied to a callable")
        return SubCommand(callback, *args, **kwargs)

    return wrapper(callback) if callback is not Unset else wrapper


__all__ = (
    "Command",
    "GlobalCommand",
    "SubCommand",
    "global_command",
    "sub_command",
)

del CommandType
