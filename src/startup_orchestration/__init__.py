from startup_orchestration.configuration import ConfigBox, ConfigurationBuilder
from startup_orchestration.errors import (
    InvalidRegistrationError,
    OrchestratorNotInitializedError,
    StartupConfigurationError,
)
from startup_orchestration.expressions import (
    CONFIGURATION,
    SERVICES,
    Deferred,
    RegistrationExpression,
    RegistrationExtension,
    format_expression,
    is_extension_method,
    registration,
    registration_extension,
    validate_service_registration,
)
from startup_orchestration.extensions import (
    add_instance,
    add_named,
    add_scoped,
    add_settings,
    add_singleton,
    add_transient,
    try_add_singleton,
)
from startup_orchestration.injector import Dependency, DependencyRegistry, Lifecycle
from startup_orchestration.orchestrator import ServiceRegistrationOrchestrator
from startup_orchestration.startup import StartupOrchestrator

__all__ = [
    "ConfigBox",
    "ConfigurationBuilder",
    "InvalidRegistrationError",
    "OrchestratorNotInitializedError",
    "StartupConfigurationError",
    "CONFIGURATION",
    "SERVICES",
    "Deferred",
    "RegistrationExpression",
    "RegistrationExtension",
    "format_expression",
    "is_extension_method",
    "registration",
    "registration_extension",
    "validate_service_registration",
    "add_instance",
    "add_named",
    "add_scoped",
    "add_settings",
    "add_singleton",
    "add_transient",
    "try_add_singleton",
    "Dependency",
    "DependencyRegistry",
    "Lifecycle",
    "ServiceRegistrationOrchestrator",
    "StartupOrchestrator",
]
