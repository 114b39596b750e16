"""Errors raised while orchestrating startup registrations."""


class InvalidRegistrationError(ValueError):
    """Raised when a service registration expression has an unsupported shape."""

    pass


class OrchestratorNotInitializedError(RuntimeError):
    """Raised when orchestration is attempted without a registry or configuration."""

    pass


class StartupConfigurationError(TypeError):
    """Raised when a startup class cannot resolve its registration orchestrator."""

    pass
