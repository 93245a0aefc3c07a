r"""
Helmsman argument declarations.

Overview
- ValueType: the closed set of value types a command argument can carry
  (boolean, string, number), with coercion of raw command-line text and
  type checks for declared defaults and choices.
- Option: named argument of a sub-command, spelled "--name" or "-a".
- Positional: unnamed argument of a sub-command, filled by order of appearance.

Introspection & representation
- ArgumentType metaclass provides stable __repr__/__rich_repr__ and exposes
  the fields listed in __introspectable__ as read-only properties.

Validation highlights (raised at construction, never at parse time)
- Names must match r"[^\W\d_](-?[^\W_]+)*" (the command-line spelling adds
  the leading "--"); short aliases are exactly one letter.
- Defaults and choices must already be of the declared type; a default must
  be one of the choices when choices are given.
- Boolean options cannot be required, repeated, or restricted to choices.

Quick examples
    >>> Option("count", "c", type=int, default=1)
    option(name='count', short_alias='c', type=<ValueType.NUMBER: 'number'>, ...)
    >>> Positional("files", variadic=True)
    positional(name='files', type=<ValueType.STRING: 'string'>, ...)
"""
import functools
import math
import operator
import re
from collections.abc import Iterable, Sequence
from enum import StrEnum

from rich.text import Text

from .utils import *

# ascii literals only, int() and float() alone also accept "1_000" and non-latin digits
_INTEGER = re.compile(r"[+-]?[0-9]+")
_DECIMAL = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")


class ValueType(StrEnum):
    """
    value types understood by the binder.

    - BOOLEAN: "true"/"false" (case-insensitive) on the command line.
    - STRING: bound verbatim.
    - NUMBER: integers first, then finite floats.
    """
    BOOLEAN = "boolean"
    STRING = "string"
    NUMBER = "number"

    @classmethod
    def of(cls, object, /):
        """
        Resolve a ValueType from a member, its value, or a python type
        (bool, str, int, float).
        """
        if isinstance(object, cls):
            return object
        if object is bool:
            return cls.BOOLEAN
        if object is str:
            return cls.STRING
        if object in (int, float):
            return cls.NUMBER
        try:
            return cls(object)
        except ValueError:
            raise TypeError("value type must be one of 'boolean', 'string' or 'number'") from None

    def check(self, value, /):
        """
        Return True when value is already a python object of this type.
        """
        match self:
            case ValueType.BOOLEAN:
                return isinstance(value, bool)
            case ValueType.STRING:
                return isinstance(value, str)
            case ValueType.NUMBER:
                return isinstance(value, int | float) and not isinstance(value, bool) and math.isfinite(value)

    def coerce(self, value, /):
        """
        Convert a raw command-line string (or an already typed value coming
        from configuration) to this type.

        Raises ValueError when the value cannot be represented.
        """
        if self.check(value):
            return value
        if not isinstance(value, str):
            if self is ValueType.STRING and isinstance(value, int | float) and not isinstance(value, bool):
                return str(value)
            raise ValueError(f"{value!r} is not a {self.value}")

        match self:
            case ValueType.BOOLEAN:
                try:
                    return {"true": True, "false": False}[value.lower()]
                except KeyError:
                    raise ValueError(f"{value!r} is not a boolean") from None
            case ValueType.STRING:
                return value
            case ValueType.NUMBER:
                if _INTEGER.fullmatch(value):
                    return int(value)
                if not _DECIMAL.fullmatch(value) or not math.isfinite(number := float(value)):
                    raise ValueError(f"{value!r} is not a number")
                return number


class ArgumentType(type):
    """
    Metaclass that turns argument specs into introspectable descriptors.

    - __typename__ is derived from the class name (camel-case split with
      hyphens) and used in messages and help output.
    - Names in __introspectable__ become read-only properties (see mirror()).
    - __repr__/__rich_repr__ list the introspectable fields.
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


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: validate the shared 'name', 'type' and 'descr' fields in place.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} name must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} name cannot be empty")
    elif not re.fullmatch(r"[^\W\d_](-?[^\W_]+)*", name):
        raise ValueError(f"{cls.__typename__} name {name!r} must be a valid shell-style name (unicodes are allowed)")
    metadata["name"] = name

    metadata["type"] = ValueType.of(metadata["type"])

    if not isinstance(descr := metadata["descr"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)


def _sanitize_value_metadata(cls, metadata, /, *, repeated=False):
    """
    Internal: validate 'choices' and 'default' against the declared type.

    When repeated is True the default is a sequence of values (multiple
    options and variadic positionals) and is normalized to a list.
    """
    type = metadata["type"]

    if not isinstance(choices := metadata["choices"], Iterable) or isinstance(choices, str):
        raise TypeError(f"{cls.__typename__} 'choices' must be iterable")
    sanitized = []
    for choice in choices:
        if not type.check(choice):
            raise TypeError(f"{cls.__typename__} {metadata['name']!r} choice {choice!r} must be a {type}")
        if choice in sanitized:
            raise ValueError(f"{cls.__typename__} 'choices' cannot contain duplicates")
        sanitized.append(choice)
    metadata["choices"] = choices = tuple(sanitized)

    if (default := metadata["default"]) is Unset:
        return

    if repeated:
        if not isinstance(default, Sequence) or isinstance(default, str):
            raise TypeError(f"{cls.__typename__} {metadata['name']!r} default must be a sequence of {type} values")
        values = list(default)
    else:
        values = [default]

    for value in values:
        if not type.check(value):
            raise TypeError(f"{cls.__typename__} {metadata['name']!r} default {value!r} must be a {type}")
        if choices and value not in choices:
            raise ValueError(f"{cls.__typename__} {metadata['name']!r} default {value!r} must be one of the choices")

    metadata["default"] = values if repeated else default


class Option(metaclass=ArgumentType):
    """
    Named argument of a sub-command.

    Spelled "--name" on the command line, or "-a" when a short alias is
    declared; values are given inline ("--name=value") or as the next token
    ("--name value"). Boolean options are presence switches: they never take
    the next token, and accept only an inline "true"/"false".

    Parameters
    - name: str, the long name without its leading dashes.
    - short_alias: Unset | str, a single letter.
    - type: ValueType | bool | str | int | float, defaults to string.
    - required: bool, the option must be bound (from the command line,
      configuration or default). Not available for booleans.
    - default: value used when nothing else binds the option.
    - choices: iterable of allowed values.
    - multiple: bool, the option may repeat and binds a list.
    - descr: short help text.
    """

    __introspectable__ = (
        "name",
        "short_alias",
        "type",
        "required",
        "default",
        "choices",
        "multiple",
        "descr",
    )

    def __init__(
            self,
            name,
            short_alias=Unset,
            /,
            type=ValueType.STRING,
            required=False,
            default=Unset,
            choices=(),
            multiple=False,
            descr=Unset,
    ):
        metadata = {
            "name": name,
            "short_alias": short_alias,
            "type": type,
            "required": bool(required),
            "default": default,
            "choices": choices,
            "multiple": bool(multiple),
            "descr": descr,
        }
        _sanitize_metadata(Option, metadata)

        if not isinstance(short_alias, str | Unset):
            raise TypeError(f"{Option.__typename__} 'short_alias' must be a string")
        elif isinstance(short_alias, str) and not re.fullmatch(r"[^\W\d_]", short_alias):
            raise ValueError(f"{Option.__typename__} 'short_alias' must be a single letter")

        if metadata["type"] is ValueType.BOOLEAN:
            for field in ("required", "multiple"):
                if metadata[field]:
                    raise ValueError(f"boolean {Option.__typename__} {metadata['name']!r} cannot be {field}")
            if metadata["choices"]:
                raise ValueError(f"boolean {Option.__typename__} {metadata['name']!r} cannot have 'choices'")

        _sanitize_value_metadata(Option, metadata, repeated=metadata["multiple"])

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    @property
    def flags(self):
        """
        Command-line spellings of this option, long form first.
        """
        if self._short_alias is Unset:
            return ("--" + self._name,)
        return "--" + self._name, "-" + self._short_alias

    @property
    def boolean(self):
        return self._type is ValueType.BOOLEAN


class Positional(metaclass=ArgumentType):
    """
    Unnamed argument of a sub-command, filled by order of appearance.

    A variadic positional takes every remaining non-option token into an
    ordered list; it has to be the last positional of its command.
    """

    __introspectable__ = (
        "name",
        "type",
        "default",
        "choices",
        "variadic",
        "descr",
    )

    def __init__(
            self,
            name,
            /,
            type=ValueType.STRING,
            default=Unset,
            choices=(),
            variadic=False,
            descr=Unset,
    ):
        metadata = {
            "name": name,
            "type": type,
            "default": default,
            "choices": choices,
            "variadic": bool(variadic),
            "descr": descr,
        }
        _sanitize_metadata(Positional, metadata)
        _sanitize_value_metadata(Positional, metadata, repeated=metadata["variadic"])

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    @property
    def metavar(self):
        return f"<{self._name}>" + ("..." if self._variadic else "")


__all__ = (
    "ValueType",
    "Option",
    "Positional",
)
