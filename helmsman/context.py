"""
Helmsman run context.

One Context per Runner.run invocation. It owns the sealed service registry
and two read-only configuration maps:

- service_configs: service id -> configuration (passed to Service.init);
- command_configs: command name -> mapping of argument name -> value, merged
  under the command line while binding.

Absent entries never fail: get_service_config() returns None and
get_command_config() returns an empty mapping.
"""
from collections.abc import Mapping
from types import MappingProxyType

from .services import ServiceRegistry, initialize
from .utils import *


def _freeze(mapping, label, /):
    if mapping is None:
        return MappingProxyType({})
    if not isinstance(mapping, Mapping):
        raise TypeError(f"context {label} must be a mapping")
    return MappingProxyType(dict(mapping))


class Context:
    """
    The services and configuration available to every command of one run.
    """

    def __init__(self, registry=Unset, /, service_configs=None, command_configs=None):
        if registry is Unset:
            registry = ServiceRegistry()
            registry.seal()
        elif not isinstance(registry, ServiceRegistry):
            raise TypeError("context registry must be a service registry")
        self._registry = registry
        self._service_configs = _freeze(service_configs, "service configs")
        self._command_configs = _freeze(command_configs, "command configs")

    @classmethod
    async def assemble(cls, services=(), /, service_configs=None, command_configs=None):
        """
        Initialize services (see services.initialize) and build a Context
        around the resulting registry.
        """
        registry = await initialize(services, service_configs)
        return cls(registry, service_configs, command_configs)

    @property
    def registry(self):
        return self._registry

    @property
    def service_configs(self):
        return self._service_configs

    @property
    def command_configs(self):
        return self._command_configs

    def get_service(self, id, capability=Unset, /):
        """
        Return the service registered under id, or None. With a capability
        class, the service is returned only if it is an instance of it.
        """
        if capability is Unset:
            return self._registry.get_service_by_id(id)
        return self._registry.get_service(id, capability)

    def get_service_config(self, id, /):
        return self._service_configs.get(id)

    def get_command_config(self, name, /):
        config = self._command_configs.get(name)
        if config is None:
            return MappingProxyType({})
        if not isinstance(config, Mapping):
            raise TypeError(f"configuration of command {name!r} must be a mapping")
        return MappingProxyType(dict(config))

    def __repr__(self):
        return f"Context(services={[service.id for service in self._registry.services]!r})"


__all__ = (
    "Context",
)
