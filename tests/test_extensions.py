import abc

import pydantic
import pytest

from startup_orchestration.configuration import ConfigurationBuilder
from startup_orchestration.extensions import (
    add_instance,
    add_named,
    add_scoped,
    add_settings,
    add_singleton,
    add_transient,
    try_add_singleton,
)
from startup_orchestration.injector import DependencyRegistry, Lifecycle, TypedKey


class Repository(abc.ABC):
    @abc.abstractmethod
    def get(self, key: str) -> str: ...


class MemoryRepository(Repository):
    def get(self, key: str) -> str:
        return f"memory:{key}"


class CachedRepository(Repository):
    def get(self, key: str) -> str:
        return f"cached:{key}"


class Handler:
    def __init__(self, repository: Repository) -> None:
        self.repository = repository


class DatabaseSettings(pydantic.BaseModel):
    host: str
    port: int = 5432


@pytest.fixture
def services():
    return DependencyRegistry()


def test_add_singleton(services: DependencyRegistry):
    add_singleton(services, Repository, MemoryRepository)
    first = services[Repository]
    assert isinstance(first, MemoryRepository)
    assert services[Repository] is first


def test_add_singleton_with_generic_arguments(services: DependencyRegistry):
    add_singleton[Repository, MemoryRepository](services)
    assert services[Repository].get("a") == "memory:a"


def test_add_singleton_defaults_to_service_type(services: DependencyRegistry):
    add_singleton[MemoryRepository](services)
    assert isinstance(services[MemoryRepository], MemoryRepository)


def test_add_singleton_with_factory(services: DependencyRegistry):
    add_singleton(services, Repository, lambda: CachedRepository())
    assert services[Repository].get("a") == "cached:a"


def test_add_transient(services: DependencyRegistry):
    add_transient[Repository, MemoryRepository](services)
    assert services[Repository] is not services[Repository]
    key = TypedKey("Repository", Repository)
    assert services.dependencies[key].lifecycle is Lifecycle.PROTOTYPE


def test_add_scoped(services: DependencyRegistry):
    add_scoped[Repository, MemoryRepository](services)
    with services.scope():
        first = services[Repository]
        assert services[Repository] is first
    with services.scope():
        assert services[Repository] is not first


def test_implementations_are_wired(services: DependencyRegistry):
    add_singleton[Repository, MemoryRepository](services)
    add_transient[Handler](services)
    handler = services[Handler]
    assert handler.repository is services[Repository]


def test_abstract_implementation_is_rejected(services: DependencyRegistry):
    with pytest.raises(TypeError):
        add_singleton[Repository](services)
    assert Repository not in services


def test_service_type_must_be_a_class(services: DependencyRegistry):
    with pytest.raises(TypeError):
        add_singleton(services, "repository", MemoryRepository)
    with pytest.raises(TypeError):
        add_instance(services, "repository", MemoryRepository())


def test_implementation_must_be_callable(services: DependencyRegistry):
    with pytest.raises(TypeError):
        add_singleton(services, Repository, 42)


def test_later_registration_replaces_earlier(services: DependencyRegistry):
    add_singleton[Repository, MemoryRepository](services)
    add_singleton[Repository, CachedRepository](services)
    assert isinstance(services[Repository], CachedRepository)


def test_try_add_singleton_keeps_existing(services: DependencyRegistry):
    add_singleton[Repository, MemoryRepository](services)
    try_add_singleton[Repository, CachedRepository](services)
    assert isinstance(services[Repository], MemoryRepository)


def test_try_add_singleton_registers_missing(services: DependencyRegistry):
    try_add_singleton[Repository, CachedRepository](services)
    assert isinstance(services[Repository], CachedRepository)


def test_add_instance(services: DependencyRegistry):
    repository = MemoryRepository()
    add_instance(services, Repository, repository)
    assert services[Repository] is repository


def test_add_named(services: DependencyRegistry):
    add_named(services, "connection_string", "sqlite://")
    add_named(services, "counter", object, lifecycle="prototype")

    assert services["connection_string"] == "sqlite://"
    assert services["counter"] is not services["counter"]

    def connect(connection_string: str) -> str:
        return f"connected to {connection_string}"

    assert services(connect) == "connected to sqlite://"


def test_add_settings_from_section(services: DependencyRegistry):
    configuration = ConfigurationBuilder(
        {"database": {"host": "db.internal", "port": "@int 6543"}}
    ).build()

    settings = add_settings[DatabaseSettings](services, configuration, "database")

    assert settings == DatabaseSettings(host="db.internal", port=6543)
    assert services[DatabaseSettings] is settings


def test_add_settings_from_root(services: DependencyRegistry):
    configuration = ConfigurationBuilder({"host": "localhost"}).build()
    settings = add_settings(services, DatabaseSettings, configuration)
    assert settings.port == 5432


def test_add_settings_validates(services: DependencyRegistry):
    configuration = ConfigurationBuilder({"database": {"port": 1}}).build()
    with pytest.raises(pydantic.ValidationError):
        add_settings[DatabaseSettings](services, configuration, "database")


def test_add_settings_requires_model(services: DependencyRegistry):
    configuration = ConfigurationBuilder().build()
    with pytest.raises(TypeError):
        add_settings[dict](services, configuration)


def test_try_add_singleton_logs_skip(
    services: DependencyRegistry, caplog: pytest.LogCaptureFixture
):
    add_singleton[Repository, MemoryRepository](services)
    with caplog.at_level("DEBUG", logger="startup_orchestration.extensions"):
        try_add_singleton[Repository, CachedRepository](services)

    (record,) = [r for r in caplog.records if r.name == "startup_orchestration.extensions"]
    assert record.msg == "%s is already registered, skipping"
    assert record.args == ("Repository",)


def test_add_scoped_resolves_one_instance_by_type_and_name(
    services: DependencyRegistry,
):
    add_scoped[Repository, MemoryRepository](services)
    with services.scope() as scope:
        assert scope[Repository] is scope["Repository"]


def test_add_scoped_override_after_name_lookup(services: DependencyRegistry):
    add_scoped[Repository, MemoryRepository](services)
    assert isinstance(services["Repository"], MemoryRepository)

    add_scoped[Repository, CachedRepository](services)

    assert isinstance(services["Repository"], CachedRepository)
    assert isinstance(services[Repository], CachedRepository)
