"""Service registration expressions.

A registration expression is a deferred call to a registration extension: a function
whose first parameter receives the dependency registry. Deferring the call lets the
orchestrator validate every registration and describe it in log messages before
anything is registered.

Example:

    @registration_extension
    def add_cache(services: DependencyRegistry, size: int) -> None:
        services.add_singleton("cache", lambda: LRUCache(size))

    expression = registration(add_cache, 128)
    format_expression(expression)  # "add_cache(this DependencyRegistry, int<128>)"
    expression.invoke(registry, configuration)
"""

import functools
import inspect
import typing as t

from startup_orchestration.configuration import ConfigBox
from startup_orchestration.errors import InvalidRegistrationError
from startup_orchestration.injector import DependencyRegistry

__all__ = [
    "CONFIGURATION",
    "SERVICES",
    "Deferred",
    "Placeholder",
    "RegistrationExpression",
    "RegistrationExtension",
    "format_expression",
    "is_extension_method",
    "registration",
    "registration_extension",
    "validate_service_registration",
]

NOT_A_CALL_MESSAGE = "Registration expression must be a call to a method on DependencyRegistry."
NOT_AN_EXTENSION_MESSAGE = (
    "Only extension methods declared on DependencyRegistry are allowed as service "
    "registration expressions."
)


class Placeholder:
    """An argument that is only known when the registration runs."""

    def __init__(self, name: str, type_: t.Type[t.Any]) -> None:
        self.name = name
        self.type_ = type_

    def __repr__(self) -> str:
        return f"<Placeholder {self.name}: {self.type_.__name__}>"


SERVICES = Placeholder("services", DependencyRegistry)
"""Stands for the registry the registration is invoked against."""

CONFIGURATION = Placeholder("configuration", ConfigBox)
"""Stands for the configuration root the registration is invoked with."""


class Deferred:
    """A nested call evaluated when the enclosing registration runs."""

    def __init__(self, func: t.Callable[..., t.Any], *args: t.Any, **kwargs: t.Any) -> None:
        if not callable(func):
            raise TypeError(f"Deferred target must be callable, got {func!r}")
        self.func = func
        self.args = args
        self.kwargs = kwargs

    @property
    def return_type_name(self) -> str:
        """The name of the type the nested call produces."""
        if inspect.isclass(self.func):
            return self.func.__name__
        try:
            hint = t.get_type_hints(self.func).get("return")
        except Exception:
            hint = None
        if hint is None:
            return object.__name__
        return _type_name(hint)

    def evaluate(self, services: DependencyRegistry, configuration: ConfigBox) -> t.Any:
        args = [_bind(arg, services, configuration) for arg in self.args]
        kwargs = {k: _bind(v, services, configuration) for k, v in self.kwargs.items()}
        return self.func(*args, **kwargs)

    def __repr__(self) -> str:
        return f"<Deferred {getattr(self.func, '__qualname__', self.func)!s}>"


def _bind(value: t.Any, services: DependencyRegistry, configuration: ConfigBox) -> t.Any:
    """Substitute placeholders and evaluate nested calls."""
    if isinstance(value, Placeholder):
        if value is SERVICES:
            return services
        if value is CONFIGURATION:
            return configuration
        raise ValueError(f"Unknown placeholder {value!r}")
    if isinstance(value, Deferred):
        return value.evaluate(services, configuration)
    return value


class RegistrationExtension:
    """A function extending the dependency registry with a registration.

    The first parameter of the wrapped function is the receiver and must be annotated
    with DependencyRegistry or a subclass of it. Subscripting binds generic arguments,
    which are passed positionally right after the receiver:

        add_singleton[Service, Implementation](services)
        # add_singleton(services, Service, Implementation)
    """

    def __init__(
        self,
        func: t.Callable[..., t.Any],
        generic_args: t.Tuple[t.Any, ...] = (),
    ) -> None:
        self.func = func
        self.generic_args = generic_args
        self.receiver_type = self._receiver_type(func)
        functools.update_wrapper(self, func)

    @staticmethod
    def _receiver_type(func: t.Callable[..., t.Any]) -> t.Type[DependencyRegistry]:
        params = list(inspect.signature(func).parameters.values())
        if not params or params[0].kind not in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            raise TypeError(
                f"Registration extension {func.__qualname__} must take the registry as its first positional parameter"
            )
        try:
            hints = t.get_type_hints(func)
        except Exception:
            hints = {}
        receiver = hints.get(params[0].name, params[0].annotation)
        if not (inspect.isclass(receiver) and issubclass(receiver, DependencyRegistry)):
            raise TypeError(
                f"The first parameter of registration extension {func.__qualname__} must be annotated with DependencyRegistry"
            )
        return receiver

    @property
    def name(self) -> str:
        return self.func.__name__

    @property
    def signature(self) -> inspect.Signature:
        return inspect.signature(self.func)

    def __getitem__(self, params: t.Any) -> "RegistrationExtension":
        if not isinstance(params, tuple):
            params = (params,)
        return RegistrationExtension(self.func, params)

    def __call__(self, services: DependencyRegistry, *args: t.Any, **kwargs: t.Any) -> t.Any:
        return self.func(services, *self.generic_args, *args, **kwargs)

    def __repr__(self) -> str:
        generics = ""
        if self.generic_args:
            generics = f"[{', '.join(map(_type_name, self.generic_args))}]"
        return f"<RegistrationExtension {self.name}{generics}>"


def registration_extension(func: t.Callable[..., t.Any]) -> RegistrationExtension:
    """Mark a function as a registration extension of the dependency registry."""
    return RegistrationExtension(func)


def is_extension_method(func: t.Any) -> bool:
    """Check if a callable is a registration extension."""
    return isinstance(func, RegistrationExtension)


class RegistrationExpression:
    """A deferred call adding bindings to a dependency registry.

    The registry is always passed as the first positional argument. The remaining
    arguments may contain SERVICES, CONFIGURATION and Deferred values which are
    resolved when the expression is invoked.
    """

    __slots__ = ("func", "args", "kwargs")

    def __init__(
        self,
        func: t.Callable[..., t.Any],
        args: t.Tuple[t.Any, ...] = (),
        kwargs: t.Optional[t.Mapping[str, t.Any]] = None,
    ) -> None:
        self.func = func
        self.args = tuple(args)
        self.kwargs = dict(kwargs or {})

    @property
    def is_extension(self) -> bool:
        return is_extension_method(self.func) and issubclass(
            self.func.receiver_type, DependencyRegistry
        )

    def invoke(self, services: DependencyRegistry, configuration: ConfigBox) -> t.Any:
        """Run the registration against a registry and configuration."""
        args = [_bind(arg, services, configuration) for arg in self.args]
        kwargs = {k: _bind(v, services, configuration) for k, v in self.kwargs.items()}
        return self.func(services, *args, **kwargs)

    __call__ = invoke

    def __str__(self) -> str:
        return format_expression(self)

    def __repr__(self) -> str:
        return f"<RegistrationExpression {self!s}>"


def registration(
    func: t.Callable[..., t.Any], *args: t.Any, **kwargs: t.Any
) -> RegistrationExpression:
    """Quote a call to a registration extension without running it.

    Args:
        func: The registration extension, optionally with generic arguments bound.
        args: Positional arguments passed after the registry.
        kwargs: Keyword arguments.

    Returns:
        The deferred registration.
    """
    return RegistrationExpression(func, args, kwargs)


def validate_service_registration(expression: t.Any) -> None:
    """Ensure an expression is a call to a registration extension.

    Raises:
        InvalidRegistrationError: If the expression is not a registration expression, or
            if it does not call a registration extension of the registry.
    """
    if not isinstance(expression, RegistrationExpression):
        raise InvalidRegistrationError(NOT_A_CALL_MESSAGE)
    if not expression.is_extension:
        raise InvalidRegistrationError(NOT_AN_EXTENSION_MESSAGE)


def _type_name(type_: t.Any) -> str:
    return getattr(type_, "__name__", None) or str(type_)


def _format_callable(func: t.Callable[..., t.Any]) -> str:
    target = func.func if isinstance(func, functools.partial) else func
    try:
        hints = t.get_type_hints(target)
    except Exception:
        hints = {}
    try:
        params = inspect.signature(func).parameters.values()
    except (TypeError, ValueError):
        return f"(...) => {getattr(target, '__qualname__', repr(target))}"
    param_types = ",".join(
        _type_name(object)
        if hints.get(p.name, p.annotation) is inspect.Parameter.empty
        else _type_name(hints.get(p.name, p.annotation))
        for p in params
    )
    return f"({param_types}) => {getattr(target, '__qualname__', repr(target))}"


def _format_argument(arg: t.Any) -> str:
    if isinstance(arg, Placeholder):
        return arg.type_.__name__
    if isinstance(arg, Deferred):
        return arg.return_type_name
    if arg is None:
        return type(None).__name__
    if inspect.isclass(arg):
        return f"type<{arg.__name__}>"
    if (
        inspect.isfunction(arg)
        or inspect.ismethod(arg)
        or inspect.isbuiltin(arg)
        or isinstance(arg, functools.partial)
    ):
        return _format_callable(arg)
    return f"{type(arg).__name__}<{arg}>"


def format_expression(expression: RegistrationExpression) -> str:
    """Describe a registration expression as a method call signature.

    The description includes the target name, any generic arguments and one entry per
    argument. For a registration extension the receiver is rendered as
    ``this DependencyRegistry``.

    Raises:
        TypeError: If the expression is not a registration expression.
    """
    if not isinstance(expression, RegistrationExpression):
        raise TypeError(f"Expected a RegistrationExpression, got {type(expression).__name__}")

    func = expression.func
    name = getattr(func, "__name__", type(func).__name__)

    generic_args = ""
    if is_extension_method(func) and func.generic_args:
        generic_args = f"<{', '.join(map(_type_name, func.generic_args))}>"

    if is_extension_method(func):
        arguments = [f"this {func.receiver_type.__name__}"]
    else:
        arguments = [DependencyRegistry.__name__]
    arguments.extend(_format_argument(arg) for arg in expression.args)
    arguments.extend(f"{k}={_format_argument(v)}" for k, v in expression.kwargs.items())

    return f"{name}{generic_args}({', '.join(arguments)})"
