import logging
import typing as t
from unittest.mock import MagicMock, call

import pytest

from startup_orchestration.configuration import ConfigBox, ConfigurationBuilder
from startup_orchestration.errors import (
    InvalidRegistrationError,
    OrchestratorNotInitializedError,
)
from startup_orchestration.expressions import (
    CONFIGURATION,
    registration,
    registration_extension,
)
from startup_orchestration.injector import DependencyRegistry
from startup_orchestration.orchestrator import ServiceRegistrationOrchestrator


@registration_extension
def add_value(services: DependencyRegistry, name: str, value: t.Any) -> None:
    services[name] = value


@registration_extension
def add_failing(services: DependencyRegistry) -> None:
    raise RuntimeError("registration failed")


class RecordingOrchestrator(ServiceRegistrationOrchestrator):
    def __init__(self, *expressions: t.Any) -> None:
        super().__init__()
        self._startup_logger = MagicMock(spec=logging.Logger)
        self.service_registrations.extend(expressions)

    @property
    def startup_logger(self) -> logging.Logger:
        return self._startup_logger


class LoggingOrchestrator(ServiceRegistrationOrchestrator):
    startup_logger = logging.getLogger("tests.startup")


@pytest.fixture
def configuration() -> ConfigBox:
    return ConfigurationBuilder({"name": "tests"}).build()


def test_orchestrate_runs_registrations_in_order(configuration: ConfigBox):
    orchestrator = RecordingOrchestrator(
        registration(add_value, "first", 1),
        registration(add_value, "second", 2),
        registration(add_value, "first", 3),
    )
    services = DependencyRegistry()

    result = orchestrator.orchestrate(services, configuration)

    assert result is services
    assert services["first"] == 3
    assert services["second"] == 2


def test_orchestrate_logs_each_registration(configuration: ConfigBox):
    expression = registration(add_value, "first", 1)
    orchestrator = RecordingOrchestrator(expression)

    orchestrator.orchestrate(DependencyRegistry(), configuration)

    description = "add_value(this DependencyRegistry, str<first>, int<1>)"
    assert orchestrator.startup_logger.debug.call_args_list == [
        call("'%s' was started...", description),
        call("'%s' completed successfully!", description),
    ]


def test_orchestrate_validates_before_running(configuration: ConfigBox):
    orchestrator = RecordingOrchestrator(
        registration(add_value, "first", 1),
        registration(print, "not an extension"),
    )
    services = DependencyRegistry()

    with pytest.raises(InvalidRegistrationError) as exc_info:
        orchestrator.orchestrate(services, configuration)

    assert "Only extension methods" in str(exc_info.value)
    assert "first" not in services
    orchestrator.startup_logger.debug.assert_not_called()


def test_orchestrate_rejects_non_expressions(configuration: ConfigBox):
    orchestrator = RecordingOrchestrator(lambda services, configuration: None)
    with pytest.raises(InvalidRegistrationError) as exc_info:
        orchestrator.orchestrate(DependencyRegistry(), configuration)
    assert "must be a call to a method on DependencyRegistry" in str(exc_info.value)


def test_orchestrate_logs_and_reraises_failures(configuration: ConfigBox):
    orchestrator = RecordingOrchestrator(
        registration(add_value, "first", 1),
        registration(add_failing),
        registration(add_value, "after", 2),
    )
    services = DependencyRegistry()

    with pytest.raises(RuntimeError, match="registration failed"):
        orchestrator.orchestrate(services, configuration)

    debug = orchestrator.startup_logger.debug
    assert debug.call_args_list[-1] == call(
        "'%s' failed with an unhandled exception.",
        "add_failing(this DependencyRegistry)",
        exc_info=True,
    )
    failures = [c for c in debug.call_args_list if c.kwargs.get("exc_info")]
    assert len(failures) == 1
    assert services["first"] == 1
    assert "after" not in services


def test_orchestrate_uses_initialized_collaborators(configuration: ConfigBox):
    orchestrator = RecordingOrchestrator(registration(add_value, "first", 1))
    services = DependencyRegistry()
    orchestrator.initialize_service_collection(services)
    orchestrator.initialize_configuration(configuration)

    assert orchestrator.services is services
    assert orchestrator.configuration is configuration
    assert orchestrator.orchestrate() is services
    assert services["first"] == 1


def test_orchestrate_requires_collaborators(configuration: ConfigBox):
    orchestrator = RecordingOrchestrator(registration(add_value, "first", 1))
    with pytest.raises(OrchestratorNotInitializedError):
        orchestrator.orchestrate(configuration=configuration)
    with pytest.raises(OrchestratorNotInitializedError):
        orchestrator.orchestrate(services=DependencyRegistry())


def test_orchestrate_with_no_registrations(configuration: ConfigBox):
    orchestrator = RecordingOrchestrator()
    services = DependencyRegistry()
    assert orchestrator.orchestrate(services, configuration) is services
    assert len(services) == 0


def test_registrations_receive_configuration(configuration: ConfigBox):
    @registration_extension
    def add_name(services: DependencyRegistry, configuration: ConfigBox) -> None:
        services.add_instance("name", configuration.name)

    orchestrator = RecordingOrchestrator(registration(add_name, CONFIGURATION))
    services = orchestrator.orchestrate(DependencyRegistry(), configuration)
    assert services["name"] == "tests"


def test_get_expression_as_string():
    orchestrator = RecordingOrchestrator()
    assert (
        orchestrator.get_expression_as_string(registration(add_failing))
        == "add_failing(this DependencyRegistry)"
    )


def test_orchestrate_emits_debug_records(
    configuration: ConfigBox, caplog: pytest.LogCaptureFixture
):
    orchestrator = LoggingOrchestrator()
    orchestrator.service_registrations.append(registration(add_failing))

    with caplog.at_level(logging.DEBUG, logger="tests.startup"):
        with pytest.raises(RuntimeError):
            orchestrator.orchestrate(DependencyRegistry(), configuration)

    messages = [record.getMessage() for record in caplog.records]
    assert messages == [
        "'add_failing(this DependencyRegistry)' was started...",
        "'add_failing(this DependencyRegistry)' failed with an unhandled exception.",
    ]
    assert caplog.records[-1].exc_info is not None
