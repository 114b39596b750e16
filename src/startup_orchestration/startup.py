"""Startup base class for the presentation layer."""

import abc
import inspect
import sys
import typing as t
from pathlib import Path

from startup_orchestration.configuration import ConfigBox, ConfigurationBuilder
from startup_orchestration.errors import StartupConfigurationError
from startup_orchestration.expressions import RegistrationExpression
from startup_orchestration.injector import DependencyRegistry
from startup_orchestration.orchestrator import ServiceRegistrationOrchestrator

TOrchestrator = t.TypeVar("TOrchestrator", bound=ServiceRegistrationOrchestrator)

__all__ = ["StartupOrchestrator"]


class StartupOrchestrator(abc.ABC, t.Generic[TOrchestrator]):
    """Hands control of service registrations to the application layer.

    A startup class in the presentation layer inherits from this class, parameterized
    with the application's ServiceRegistrationOrchestrator. `configure_services` builds
    the configuration, creates the orchestrator, appends the presentation specific
    registrations to the application ones and runs them all.

        class WebStartup(StartupOrchestrator[CoreServices]):
            def add_configuration_providers(self, builder: ConfigurationBuilder) -> None:
                builder.add_json_file("appsettings.json", optional=True)
                builder.add_environment_variables("APP_")

    The orchestrator class is taken from the generic parameter, or from an explicit
    `orchestrator_class` attribute on the startup class.
    """

    orchestrator_class: t.ClassVar[
        t.Optional[t.Type[ServiceRegistrationOrchestrator]]
    ] = None

    def __init_subclass__(cls, **kwargs: t.Any) -> None:
        super().__init_subclass__(**kwargs)
        if "orchestrator_class" in cls.__dict__:
            return
        for base in cls.__dict__.get("__orig_bases__", ()):
            origin = t.get_origin(base)
            if not (inspect.isclass(origin) and issubclass(origin, StartupOrchestrator)):
                continue
            for arg in t.get_args(base):
                if inspect.isclass(arg) and issubclass(
                    arg, ServiceRegistrationOrchestrator
                ):
                    cls.orchestrator_class = arg
                    return

    def __init__(self) -> None:
        self.service_registrations: t.List[RegistrationExpression] = []
        """Presentation registrations, run after the orchestrator's own."""
        self._default_configuration_builder: t.Optional[ConfigurationBuilder] = None

    @property
    def default_configuration_builder(self) -> ConfigurationBuilder:
        """The builder `setup_configuration` adds sources to.

        A new ConfigurationBuilder is used unless one is assigned.
        """
        if self._default_configuration_builder is None:
            self._default_configuration_builder = ConfigurationBuilder()
        return self._default_configuration_builder

    @default_configuration_builder.setter
    def default_configuration_builder(self, builder: ConfigurationBuilder) -> None:
        self._default_configuration_builder = builder

    def configure_services(self, services: DependencyRegistry) -> ConfigBox:
        """Build the configuration and run every registration against the registry.

        Args:
            services: The registry the host resolves its services from.

        Returns:
            The configuration the registrations were run with.
        """
        configuration = self.setup_configuration()
        orchestrator = self.create_orchestrator()
        orchestrator.initialize_configuration(configuration)
        orchestrator.initialize_service_collection(services)
        orchestrator.orchestrate()
        return configuration

    def create_orchestrator(self) -> ServiceRegistrationOrchestrator:
        """Instantiate the orchestrator and append the presentation registrations."""
        orchestrator_class = type(self).orchestrator_class
        if orchestrator_class is None:
            raise StartupConfigurationError(
                f"{type(self).__name__} must parameterize StartupOrchestrator with a "
                "ServiceRegistrationOrchestrator subclass or set orchestrator_class"
            )
        orchestrator = orchestrator_class()
        orchestrator.service_registrations.extend(self.service_registrations)
        return orchestrator

    def setup_configuration(self) -> ConfigBox:
        """Set the base path, add the configuration providers and build the configuration."""
        builder = self.default_configuration_builder
        self.set_base_path(builder)
        self.add_configuration_providers(builder)
        return builder.build()

    def set_base_path(self, builder: ConfigurationBuilder) -> None:
        """Resolve relative configuration files against the directory of the startup module."""
        module = sys.modules.get(type(self).__module__)
        module_file = getattr(module, "__file__", None)
        if module_file:
            builder.set_base_path(Path(module_file).resolve().parent)
        else:
            builder.set_base_path(Path.cwd())

    @abc.abstractmethod
    def add_configuration_providers(self, builder: ConfigurationBuilder) -> None:
        """Add the configuration sources the application reads, such as files or environment variables."""
