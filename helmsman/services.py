"""
Helmsman services.

A service is a long-lived collaborator made available to commands through
the run context (a printer, a configuration store, an API client, ...).

Lifecycle
- constructed by the host before any command runs;
- initialized exactly once per invocation by initialize(), in descending
  run_priority order (registration order breaks ties), each init awaited
  before the next one starts;
- registered in a ServiceRegistry, which is sealed once the pass completes
  and handed to the Context as an immutable snapshot.

There is no teardown hook and no removal operation.
"""
import inspect
import logging
import re

from .utils import *

logger = logging.getLogger(__name__)


class Service:
    """
    Base class for services.

    Subclasses set 'id' (unique within a registry) and may set
    'run_priority' (higher initializes first) as class attributes or pass
    them to __init__. init(config) may be a plain method or a coroutine.
    """
    id = Unset
    run_priority = 0

    def __init__(self, id=Unset, /, run_priority=Unset):
        if id is not Unset:
            self.id = id
        if run_priority is not Unset:
            self.run_priority = run_priority

        if not isinstance(self.id, str):
            raise TypeError(f"{type(self).__name__} 'id' must be a string")
        elif not re.fullmatch(r"[^\W\d_](-?[^\W_]+)*", self.id):
            raise ValueError(f"{type(self).__name__} 'id' {self.id!r} must be a valid shell-style name")
        if not isinstance(self.run_priority, int) or isinstance(self.run_priority, bool):
            raise TypeError(f"{type(self).__name__} 'run_priority' must be an integer")

    def init(self, config, /):
        """
        Prepare the service with its configuration (None when absent).
        """

    def __repr__(self):
        return f"{type(self).__name__}(id={self.id!r}, run_priority={self.run_priority!r})"


class ServiceRegistry:
    """
    Services by id.

    add_service() rejects duplicate ids and refuses any addition once the
    registry has been sealed by initialize().
    """

    def __init__(self):
        self._services = {}
        self._sealed = False

    def add_service(self, service, /):
        if not isinstance(service, Service):
            raise TypeError("add_service() argument must be a service")
        if self._sealed:
            raise TypeError("service registry is sealed, services cannot be added after initialization")
        if self._services.setdefault(service.id, service) is not service:
            raise ValueError(f"Duplicate service ID {service.id!r}")
        logger.debug("registered service %r", service.id)

    def get_service_by_id(self, id, /):
        """
        Return the service registered under id, or None.
        """
        return self._services.get(id)

    def get_service(self, id, capability, /):
        """
        Return the service registered under id only when it provides the
        requested capability (an instance of that class), otherwise None.
        """
        if not isinstance(capability, type):
            raise TypeError("get_service() second argument must be a class")
        service = self._services.get(id)
        return service if isinstance(service, capability) else None

    @property
    def services(self):
        """
        Registered services, highest run_priority first.
        """
        return sorted(self._services.values(), key=lambda service: -service.run_priority)

    @property
    def sealed(self):
        return self._sealed

    def seal(self):
        self._sealed = True

    def __contains__(self, id):
        return id in self._services

    def __len__(self):
        return len(self._services)

    def __repr__(self):
        return f"ServiceRegistry({list(self._services)!r})"


async def initialize(services, configs=None, /):
    """
    Initialize services in descending run_priority order and return a
    sealed registry holding them.

    configs maps service ids to their configuration; a service without an
    entry receives None. Duplicate ids are rejected before any service is
    initialized. Failures propagate to the caller.
    """
    configs = configs or {}
    services = list(services)

    seen = set()
    for service in services:
        if not isinstance(service, Service):
            raise TypeError("initialize() argument must be an iterable of services")
        if service.id in seen:
            raise ValueError(f"Duplicate service ID {service.id!r}")
        seen.add(service.id)

    registry = ServiceRegistry()
    # sorted() is stable, so equal priorities keep registration order
    for service in sorted(services, key=lambda service: -service.run_priority):
        logger.debug("initializing service %r (priority %d)", service.id, service.run_priority)
        if inspect.isawaitable(result := service.init(configs.get(service.id))):
            await result
        registry.add_service(service)

    registry.seal()
    return registry


__all__ = (
    "Service",
    "ServiceRegistry",
    "initialize",
)
