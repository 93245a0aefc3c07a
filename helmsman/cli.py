"""
Helmsman host shell.

CLI wires a program together: it registers the application commands next to
the built-ins (help, version, config, color, no-color, log-level), builds
fresh services on every execution, loads the configuration file, assembles
the Context and runs the Runner. Faults of a failed run are rendered to
stderr through the printer service.

    cli = CLI("greeter", version="1.0.0", commands=[greet])

    if __name__ == "__main__":
        cli.main()
"""
import asyncio
import copy
import logging
import sys
from collections.abc import Iterable

from rich.console import Console

from . import configuration
from .builtins import (
    color_command,
    config_command,
    help_command,
    log_level_command,
    no_color_command,
    usage_command,
    version_command,
)
from .context import Context
from .faults import FaultCode, GeneralCommandError, RunResult
from .printer import PrinterService
from .runner import Runner
from .utils import *

logger = logging.getLogger(__name__)


class CLI:
    """
    A command-line program.

    Parameters
    - name: program name, shown in help and faults.
    - version: Unset | str, enables the --version/-v global.
    - descr: short program description for help.
    - commands: application commands (GlobalCommand / SubCommand).
    - services: service factories, called on each execution (a Service
      subclass works as its own factory).
    - service_configs / command_configs: mappings overriding, per key, the
      sections of the configuration file.
    - config_path: Unset (~/.<name>.yaml if it exists), None (no file), or an
      explicit path that must exist. "--config=<location>" on the command
      line replaces it for one execution.
    - default: Unset | command executed when no sub-command is given.
    - printer: factory of the printer service.
    """

    def __init__(
            self,
            name,
            /,
            *,
            version=Unset,
            descr=None,
            commands=(),
            services=(),
            service_configs=None,
            command_configs=None,
            config_path=Unset,
            default=Unset,
            printer=PrinterService,
    ):
        if not isinstance(name, str) or not name.strip():
            raise TypeError("cli name must be a non-empty string")
        if not isinstance(services, Iterable) or not all(map(callable, services := list(services))):
            raise TypeError("cli services must be an iterable of service factories")
        if not callable(printer):
            raise TypeError("cli printer must be a service factory")

        self._name = name.strip()
        self._version = version
        self._descr = descr
        self._factories = [printer, *services]
        self._service_configs = dict(service_configs or {})
        self._command_configs = dict(command_configs or {})
        self._config_path = config_path

        self._runner = Runner(commands, default=default)
        self._runner.add_command(help_command(self._runner, self._name, descr))
        if version is not Unset:
            self._runner.add_command(version_command(self._name, version))
        self._config = config_command()
        self._runner.add_command(self._config)
        self._runner.add_command(color_command())
        self._runner.add_command(no_color_command())
        self._runner.add_command(log_level_command())
        self._runner.usage = usage_command(self._runner, self._name)

    @property
    def name(self):
        return self._name

    @property
    def runner(self):
        return self._runner

    def _configure(self, argv, /):
        # the last non-empty --config=<location> wins over config_path
        if locations := [location for location in self._runner.extract(argv, self._config) if location]:
            services, commands = configuration.load(locations[-1])
        else:
            match self._config_path:
                case None:
                    services, commands = {}, {}
                case UnsetType():
                    services, commands = configuration.load(configuration.default_path(self._name), missing_ok=True)
                case path:
                    services, commands = configuration.load(path)
        return services | self._service_configs, commands | self._command_configs

    async def execute(self, argv=Unset, /):
        """
        Run the program once with argv (sys.argv[1:] when unset) and return
        its RunResult.
        """
        argv = sys.argv[1:] if argv is Unset else list(argv)

        try:
            service_configs, command_configs = self._configure(argv)
            services = [factory() for factory in self._factories]
            context = await Context.assemble(services, service_configs, command_configs)
        except Exception as exception:
            logger.debug("cannot start %r", self._name, exc_info=True)
            Console(stderr=True).print(GeneralCommandError(
                "cannot start: %s" % (str(exception) or type(exception).__name__),
                title="general error",
                code=FaultCode.GENERAL_ERROR,
                hint="check the configuration and the services of the program",
                prog=self._name,
                exception=exception,
            ))
            return RunResult.GENERAL_ERROR

        result = await self._runner.run(argv, context)
        logger.debug("%r finished with %s", self._name, result.name)

        if result is not RunResult.SUCCESS:
            printer = context.get_service(PrinterService.id, PrinterService)
            for fault in self._runner.faults:
                if printer is None:
                    Console(stderr=True).print(copy.replace(fault, prog=self._name))
                else:
                    printer.fault(fault, prog=self._name)

        return result

    def main(self, argv=Unset, /):
        """
        Execute and exit the process with the outcome's exit status.
        """
        sys.exit(asyncio.run(self.execute(argv)).exit_code)


__all__ = (
    "CLI",
)
