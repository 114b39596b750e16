"""Orchestration of service registrations, agnostic of the presentation layer."""

import abc
import logging
import typing as t

from startup_orchestration.configuration import ConfigBox
from startup_orchestration.errors import OrchestratorNotInitializedError
from startup_orchestration.expressions import (
    RegistrationExpression,
    format_expression,
    validate_service_registration,
)
from startup_orchestration.injector import DependencyRegistry

__all__ = ["ServiceRegistrationOrchestrator"]


class ServiceRegistrationOrchestrator(abc.ABC):
    """Runs an ordered list of service registrations against a registry.

    The application layer subclasses this to declare which services it needs, without
    depending on the web, desktop or console host that starts it. The host supplies
    the registry and the configuration, either directly to `orchestrate` or through
    `initialize_service_collection` and `initialize_configuration`.

    Example:

        class CoreServices(ServiceRegistrationOrchestrator):
            startup_logger = logging.getLogger("core.startup")

            def __init__(self) -> None:
                super().__init__()
                self.service_registrations.append(
                    registration(add_scoped[Repository, SqlRepository])
                )
    """

    def __init__(self) -> None:
        self.service_registrations: t.List[RegistrationExpression] = []
        """Registrations run in order by `orchestrate`."""
        self._services: t.Optional[DependencyRegistry] = None
        self._configuration: t.Optional[ConfigBox] = None

    @property
    @abc.abstractmethod
    def startup_logger(self) -> t.Union[logging.Logger, logging.LoggerAdapter]:
        """Logger for registrations made before the container is available."""

    @property
    def services(self) -> t.Optional[DependencyRegistry]:
        return self._services

    @property
    def configuration(self) -> t.Optional[ConfigBox]:
        return self._configuration

    def initialize_service_collection(self, services: DependencyRegistry) -> None:
        """Set the registry the registrations are made against."""
        self._services = services

    def initialize_configuration(self, configuration: ConfigBox) -> None:
        """Set the configuration passed to the registrations."""
        self._configuration = configuration

    def orchestrate(
        self,
        services: t.Optional[DependencyRegistry] = None,
        configuration: t.Optional[ConfigBox] = None,
    ) -> DependencyRegistry:
        """Validate then run every service registration in order.

        All registrations are validated before the first one runs. Each registration is
        logged when it starts and when it completes. A failing registration is logged
        once with its traceback and the exception is re-raised, so the registrations
        after it do not run.

        Args:
            services: The registry to register services in. Defaults to the initialized
                registry.
            configuration: The configuration root. Defaults to the initialized
                configuration.

        Raises:
            InvalidRegistrationError: If any registration is not a call to a registration
                extension.
            OrchestratorNotInitializedError: If no registry or configuration is available.

        Returns:
            The registry the services were registered in.
        """
        services = services if services is not None else self._services
        configuration = (
            configuration if configuration is not None else self._configuration
        )
        if services is None:
            raise OrchestratorNotInitializedError(
                "No registry was provided and initialize_service_collection was not called"
            )
        if configuration is None:
            raise OrchestratorNotInitializedError(
                "No configuration was provided and initialize_configuration was not called"
            )

        for expression in self.service_registrations:
            validate_service_registration(expression)

        for expression in self.service_registrations:
            expression_as_string = self.get_expression_as_string(expression)
            try:
                self.startup_logger.debug("'%s' was started...", expression_as_string)
                expression.invoke(services, configuration)
                self.startup_logger.debug(
                    "'%s' completed successfully!", expression_as_string
                )
            except Exception:
                self.startup_logger.debug(
                    "'%s' failed with an unhandled exception.",
                    expression_as_string,
                    exc_info=True,
                )
                raise

        return services

    def get_expression_as_string(self, expression: RegistrationExpression) -> str:
        """Describe a registration for log messages."""
        return format_expression(expression)
