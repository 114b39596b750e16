class DependencyCycleError(Exception):
    """Raised when a dependency cycle is detected."""

    pass


class DependencyMutationError(Exception):
    """Raised when an instance/singleton dependency has already been resolved but a mutation is attempted."""

    pass


class DependencyScopeError(RuntimeError):
    """Raised when a scope is used after it has been closed."""

    pass
