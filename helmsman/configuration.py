"""
Helmsman configuration files.

A configuration file is a YAML document with two optional top-level
mappings:

    services:
      printer:
        colorful: false
    commands:
      greeter:
        message: [hello, world]

'services' is keyed by service id and handed to Service.init; 'commands' is
keyed by command name and merged under the command line while binding.
"""
from collections.abc import Mapping
from pathlib import Path

import yaml


class ConfigurationError(ValueError):
    """
    A configuration file could not be read or has the wrong shape.
    """


def default_path(name, /):
    """
    Location of the configuration file of a program: ~/.<name>.yaml
    """
    return Path.home() / f".{name}.yaml"


def load(path, /, *, missing_ok=False):
    """
    Read a configuration file and return (service_configs, command_configs).

    A missing file yields two empty mappings when missing_ok is True and
    raises ConfigurationError otherwise; so do unreadable files, invalid
    YAML and unexpected shapes.
    """
    path = Path(path).expanduser()

    try:
        source = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        if missing_ok:
            return {}, {}
        raise ConfigurationError(f"configuration file {str(path)!r} does not exist") from None
    except IsADirectoryError:
        raise ConfigurationError(f"configuration path {str(path)!r} is a directory") from None
    except (OSError, UnicodeDecodeError) as exception:
        raise ConfigurationError(f"configuration file {str(path)!r} cannot be read: {exception}") from exception

    try:
        document = yaml.safe_load(source)
    except yaml.YAMLError as exception:
        raise ConfigurationError(f"configuration file {str(path)!r} is not valid YAML: {exception}") from exception

    if document is None:
        return {}, {}
    if not isinstance(document, Mapping):
        raise ConfigurationError(f"configuration file {str(path)!r} must contain a mapping")

    sections = []
    for key in ("services", "commands"):
        section = document.get(key) or {}
        if not isinstance(section, Mapping):
            raise ConfigurationError(f"configuration {key!r} of {str(path)!r} must be a mapping")
        for name, config in section.items():
            if not isinstance(name, str):
                raise ConfigurationError(f"configuration {key!r} of {str(path)!r} must be keyed by names")
            if key == "commands" and not isinstance(config, Mapping | None):
                raise ConfigurationError(f"configuration of command {name!r} must be a mapping")
        sections.append(dict(section))

    unknown = set(document) - {"services", "commands"}
    if unknown:
        raise ConfigurationError(f"configuration file {str(path)!r} has unknown sections: {', '.join(sorted(map(str, unknown)))}")

    services, commands = sections
    return services, commands


__all__ = (
    "ConfigurationError",
    "default_path",
    "load",
)
