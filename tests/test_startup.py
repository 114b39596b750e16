import abc
import logging
from pathlib import Path

import pydantic
import pytest

from startup_orchestration.configuration import ConfigBox, ConfigurationBuilder
from startup_orchestration.errors import (
    InvalidRegistrationError,
    StartupConfigurationError,
)
from startup_orchestration.expressions import CONFIGURATION, registration
from startup_orchestration.extensions import add_scoped, add_settings, add_singleton
from startup_orchestration.injector import DependencyRegistry
from startup_orchestration.orchestrator import ServiceRegistrationOrchestrator
from startup_orchestration.startup import StartupOrchestrator


class Repository(abc.ABC):
    @abc.abstractmethod
    def find(self, key: str) -> str: ...


class MemoryRepository(Repository):
    def find(self, key: str) -> str:
        return key.upper()


class Presenter(abc.ABC):
    @abc.abstractmethod
    def show(self, key: str) -> str: ...


class ConsolePresenter(Presenter):
    def __init__(self, repository: Repository) -> None:
        self.repository = repository

    def show(self, key: str) -> str:
        return f"> {self.repository.find(key)}"


class AppSettings(pydantic.BaseModel):
    base_path: str = pydantic.Field(alias="BasePath")


class CoreServices(ServiceRegistrationOrchestrator):
    startup_logger = logging.getLogger("tests.core.startup")

    def __init__(self) -> None:
        super().__init__()
        self.service_registrations.append(
            registration(add_scoped[Repository, MemoryRepository])
        )


class ConsoleStartup(StartupOrchestrator[CoreServices]):
    def __init__(self) -> None:
        super().__init__()
        self.service_registrations.append(
            registration(add_singleton[Presenter, ConsolePresenter])
        )
        self.service_registrations.append(
            registration(add_settings[AppSettings], CONFIGURATION)
        )

    def add_configuration_providers(self, builder: ConfigurationBuilder) -> None:
        builder.add_in_memory_collection({"BasePath": "test"})
        builder.add_json_file("appsettings.json", optional=True)


class ExplicitStartup(StartupOrchestrator):
    orchestrator_class = CoreServices

    def add_configuration_providers(self, builder: ConfigurationBuilder) -> None:
        pass


class OrphanStartup(StartupOrchestrator):
    def add_configuration_providers(self, builder: ConfigurationBuilder) -> None:
        pass


class NestedStartup(ConsoleStartup):
    pass


def test_orchestrator_class_from_generic_parameter():
    assert ConsoleStartup.orchestrator_class is CoreServices
    assert NestedStartup.orchestrator_class is CoreServices
    assert ExplicitStartup.orchestrator_class is CoreServices
    assert OrphanStartup.orchestrator_class is None


def test_configure_services_registers_all_layers():
    services = DependencyRegistry()
    configuration = ConsoleStartup().configure_services(services)

    assert isinstance(configuration, ConfigBox)
    assert Repository in services
    assert Presenter in services
    assert services[Presenter].show("id") == "> ID"
    assert services[AppSettings].base_path == "test"


def test_application_registrations_run_first():
    startup = ConsoleStartup()
    orchestrator = startup.create_orchestrator()

    assert isinstance(orchestrator, CoreServices)
    assert [str(e) for e in orchestrator.service_registrations] == [
        "add_scoped<Repository, MemoryRepository>(this DependencyRegistry)",
        "add_singleton<Presenter, ConsolePresenter>(this DependencyRegistry)",
        "add_settings<AppSettings>(this DependencyRegistry, ConfigBox)",
    ]
    assert len(CoreServices().service_registrations) == 1


def test_setup_configuration_uses_in_memory_values():
    configuration = ConsoleStartup().setup_configuration()
    assert configuration["BasePath"] == "test"


def test_base_path_is_startup_module_directory():
    startup = ConsoleStartup()
    startup.setup_configuration()
    assert startup.default_configuration_builder.base_path == Path(__file__).resolve().parent


def test_custom_configuration_builder():
    startup = ConsoleStartup()
    builder = ConfigurationBuilder({"Extra": "value"})
    startup.default_configuration_builder = builder

    configuration = startup.setup_configuration()

    assert startup.default_configuration_builder is builder
    assert configuration.Extra == "value"
    assert configuration.BasePath == "test"


def test_invalid_presentation_registration():
    startup = ConsoleStartup()
    startup.service_registrations.append(registration(print, "hello"))
    services = DependencyRegistry()

    with pytest.raises(InvalidRegistrationError) as exc_info:
        startup.configure_services(services)

    assert (
        "Only extension methods declared on DependencyRegistry are allowed as service "
        "registration expressions." in str(exc_info.value)
    )
    assert Repository not in services


def test_explicit_orchestrator_class():
    services = DependencyRegistry()
    ExplicitStartup().configure_services(services)
    assert isinstance(services[Repository], MemoryRepository)


def test_missing_orchestrator_class():
    with pytest.raises(StartupConfigurationError):
        OrphanStartup().configure_services(DependencyRegistry())


def test_startup_is_abstract():
    with pytest.raises(TypeError):
        StartupOrchestrator()  # type: ignore
