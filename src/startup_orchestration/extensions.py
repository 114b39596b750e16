"""Registration extensions shipped with the package.

Each extension takes the registry as its first parameter so it can be used in a
registration expression:

    registration(add_scoped[Repository, SqlRepository])
    registration(add_settings[DatabaseSettings], CONFIGURATION, "database")
"""

import inspect
import logging
import typing as t

import pydantic

from startup_orchestration.configuration import ConfigBox
from startup_orchestration.expressions import registration_extension
from startup_orchestration.injector import DependencyKey, DependencyRegistry, Lifecycle

logger = logging.getLogger(__name__)

TSettings = t.TypeVar("TSettings", bound=pydantic.BaseModel)

__all__ = [
    "add_instance",
    "add_named",
    "add_scoped",
    "add_settings",
    "add_singleton",
    "add_transient",
    "try_add_singleton",
]


def _add_service(
    services: DependencyRegistry,
    service_type: t.Type[t.Any],
    implementation: t.Optional[t.Any],
    lifecycle: Lifecycle,
    override: bool = True,
) -> None:
    """Register an implementation, or a factory, for a service type."""
    if not inspect.isclass(service_type):
        raise TypeError(f"Service type must be a class, got {service_type!r}")
    if implementation is None:
        implementation = service_type
    if inspect.isclass(implementation):
        abstract = getattr(implementation, "__abstractmethods__", None)
        if abstract:
            raise TypeError(
                f"Cannot register abstract class {implementation.__name__} for {service_type.__name__}"
            )
    elif not callable(implementation):
        raise TypeError(
            f"Implementation for {service_type.__name__} must be a class or a factory, got {implementation!r}"
        )
    services.add(service_type, implementation, lifecycle=lifecycle, override=override)


@registration_extension
def add_singleton(
    services: DependencyRegistry,
    service_type: t.Type[t.Any],
    implementation: t.Optional[t.Any] = None,
) -> None:
    """Register a service created once and shared by every consumer."""
    _add_service(services, service_type, implementation, Lifecycle.SINGLETON)


@registration_extension
def add_transient(
    services: DependencyRegistry,
    service_type: t.Type[t.Any],
    implementation: t.Optional[t.Any] = None,
) -> None:
    """Register a service created anew each time it is resolved."""
    _add_service(services, service_type, implementation, Lifecycle.PROTOTYPE)


@registration_extension
def add_scoped(
    services: DependencyRegistry,
    service_type: t.Type[t.Any],
    implementation: t.Optional[t.Any] = None,
) -> None:
    """Register a service created once per registry scope."""
    _add_service(services, service_type, implementation, Lifecycle.SCOPED)


@registration_extension
def try_add_singleton(
    services: DependencyRegistry,
    service_type: t.Type[t.Any],
    implementation: t.Optional[t.Any] = None,
) -> None:
    """Register a singleton unless the service type is already registered."""
    if services.has(service_type):
        logger.debug("%s is already registered, skipping", service_type.__name__)
        return
    _add_service(
        services, service_type, implementation, Lifecycle.SINGLETON, override=False
    )


@registration_extension
def add_instance(
    services: DependencyRegistry, service_type: t.Type[t.Any], instance: t.Any
) -> None:
    """Register an existing object for a service type."""
    if not inspect.isclass(service_type):
        raise TypeError(f"Service type must be a class, got {service_type!r}")
    services.add(service_type, instance, lifecycle=Lifecycle.INSTANCE, override=True)


@registration_extension
def add_named(
    services: DependencyRegistry,
    key: DependencyKey,
    value: t.Any,
    lifecycle: t.Optional[t.Union[Lifecycle, str]] = None,
) -> None:
    """Register a dependency under a name or typed key so it can be injected by name."""
    if isinstance(lifecycle, str):
        lifecycle = Lifecycle[lifecycle.upper()]
    services.add(key, value, lifecycle=lifecycle, override=True)


@registration_extension
def add_settings(
    services: DependencyRegistry,
    settings_type: t.Type[TSettings],
    configuration: ConfigBox,
    section: t.Optional[str] = None,
) -> TSettings:
    """Bind a configuration section to a settings model and register the result.

    Args:
        services: The registry to add the settings to.
        settings_type: A pydantic model describing the section.
        configuration: The configuration root.
        section: Dotted path of the section. The whole configuration is bound if omitted.

    Raises:
        pydantic.ValidationError: If the section does not satisfy the model.

    Returns:
        The validated settings.
    """
    if not (inspect.isclass(settings_type) and issubclass(settings_type, pydantic.BaseModel)):
        raise TypeError(f"Settings type must be a pydantic model, got {settings_type!r}")
    values = configuration.section(section) if section else configuration
    settings = settings_type.model_validate(values.to_resolved_dict())
    services.add(settings_type, settings, lifecycle=Lifecycle.INSTANCE, override=True)
    return settings
