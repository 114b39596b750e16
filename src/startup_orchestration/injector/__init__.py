from startup_orchestration.injector.errors import (
    DependencyCycleError,
    DependencyMutationError,
    DependencyScopeError,
)
from startup_orchestration.injector.registry import (
    Dependency,
    DependencyKey,
    DependencyRegistry,
    DependencyScope,
    Lifecycle,
    TypedKey,
)

__all__ = [
    "Dependency",
    "DependencyRegistry",
    "DependencyScope",
    "DependencyKey",
    "Lifecycle",
    "TypedKey",
    "DependencyCycleError",
    "DependencyMutationError",
    "DependencyScopeError",
]
