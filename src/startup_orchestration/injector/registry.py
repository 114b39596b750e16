"""Dependency registry with lifecycle management."""

import contextlib
import enum
import inspect
import logging
import sys
import types
import typing as t
from collections import ChainMap
from contextvars import ContextVar
from functools import partial, partialmethod, wraps

import pydantic
from typing_extensions import ParamSpec, Self

from startup_orchestration.injector.errors import (
    DependencyCycleError,
    DependencyMutationError,
    DependencyScopeError,
)

logger = logging.getLogger(__name__)

T = t.TypeVar("T")
P = ParamSpec("P")

__all__ = [
    "DependencyRegistry",
    "DependencyScope",
    "Dependency",
    "Lifecycle",
    "DependencyKey",
    "TypedKey",
]


class Lifecycle(enum.Enum):
    """Lifecycle of a dependency."""

    PROTOTYPE = enum.auto()
    """A prototype dependency is created every time it is requested"""

    SINGLETON = enum.auto()
    """A singleton dependency is created once and shared."""

    SCOPED = enum.auto()
    """A scoped dependency is created once per scope, or once at the root outside a scope."""

    INSTANCE = enum.auto()
    """An instance dependency is a global object which is not created by the container."""

    @property
    def is_prototype(self) -> bool:
        """Check if the lifecycle is prototype."""
        return self == Lifecycle.PROTOTYPE

    @property
    def is_singleton(self) -> bool:
        """Check if the lifecycle is singleton."""
        return self == Lifecycle.SINGLETON

    @property
    def is_scoped(self) -> bool:
        """Check if the lifecycle is scoped."""
        return self == Lifecycle.SCOPED

    @property
    def is_instance(self) -> bool:
        """Check if the lifecycle is instance."""
        return self == Lifecycle.INSTANCE

    @property
    def is_deferred(self) -> bool:
        """Check if the object to be created is deferred."""
        return not self.is_instance

    def __str__(self) -> str:
        return self.name.lower()


class TypedKey(t.NamedTuple):
    """A key which is a tuple of a name and a type."""

    name: str
    type_: t.Type[t.Any]

    @property
    def type_name(self) -> t.Optional[str]:
        """Get the name of the type if applicable."""
        return getattr(self.type_, "__name__", str(self.type_))

    def __str__(self) -> str:
        return f"{self.name}: {self.type_name}"

    def __repr__(self) -> str:
        return f"<TypedKey {self!s}>"

    def __eq__(self, other: t.Any) -> bool:
        """Two keys are equal if their names and base types match."""
        if not isinstance(other, (TypedKey, tuple)) or len(other) != 2:
            return False
        return self.name == other[0] and _same_type(self.type_, other[1])

    def __hash__(self) -> int:
        """Hash the key with the effective type if possible."""
        try:
            return hash((self.name, _unwrap_type(self.type_)))
        except TypeError as e:
            logger.warning(f"Failed to hash key {self!r}: {e}")
            return hash((self.name, self.type_))


DependencyKey = t.Union[str, t.Tuple[str, t.Type[t.Any]], TypedKey, t.Type[t.Any]]
"""A string, a typed key or a bare service type."""


def _unwrap_optional(hint: t.Type) -> t.Type:
    """Unwrap Optional type hint. Also unwraps types.UnionType like str | None

    Args:
        hint: The type hint.

    Returns:
        The unwrapped type hint.
    """
    args = t.get_args(hint)
    if len(args) != 2 or args[1] is not type(None):
        return hint
    return args[0]


def _is_union(hint: t.Type) -> bool:
    """Check if a type hint is a Union."""
    origin = t.get_origin(hint)
    return origin is t.Union or (
        sys.version_info >= (3, 10) and origin is types.UnionType
    )


def _is_ambiguous_type(hint: t.Optional[t.Type]) -> bool:
    """Check if a type hint or Signature annotation is ambiguous.

    Args:
        hint: The type hint.

    Returns:
        True if the type hint is ambiguous.
    """
    return hint in (
        object,
        t.Any,
        None,
        type(None),
        t.NoReturn,
        inspect.Parameter.empty,
        type(lambda: None),
    )


def _unwrap_type(hint: t.Type) -> t.Type:
    """Unwrap a type hint.

    For a Union, this is the base type if all types are the same base type.
    Otherwise, it is the hint itself with Optional unwrapped.

    Args:
        hint: The type hint.

    Returns:
        The unwrapped type hint.
    """
    hint = _unwrap_optional(hint)
    if _is_union(hint):
        args = list(map(_unwrap_optional, t.get_args(hint)))
        if not args:
            return hint
        f_base = getattr(args[0], "__base__", None)
        if f_base and all(f_base is getattr(arg, "__base__", None) for arg in args[1:]):
            return f_base
    return hint


def _same_type(hint1: t.Type, hint2: t.Type) -> bool:
    """Check if two type hints are of the same unwrapped type."""
    return _unwrap_type(hint1) is _unwrap_type(hint2)


def _type_key(type_: t.Type[t.Any]) -> TypedKey:
    """Build the key a bare service type is registered under."""
    return TypedKey(type_.__name__, type_)


@t.overload
def _normalize_key(key: str) -> str: ...


@t.overload
def _normalize_key(
    key: t.Union[t.Tuple[str, t.Any], TypedKey, t.Type[t.Any]],
) -> TypedKey: ...


def _normalize_key(key: DependencyKey) -> t.Union[str, TypedKey]:
    """Normalize a key 2-tuple or type to a TypedKey if it is not already, preserve str.

    Args:
        key: The key to normalize.

    Returns:
        The normalized key.
    """
    if isinstance(key, str):
        return key
    if inspect.isclass(key):
        return _type_key(key)
    k, t_ = key
    return TypedKey(k, _unwrap_type(t_))


def _safe_get_type_hints(obj: t.Any) -> t.Dict[str, t.Type]:
    """Get type hints for an object, ignoring errors.

    Args:
        obj: The object to get type hints for.

    Returns:
        A dictionary of attribute names to type hints.
    """
    try:
        if isinstance(obj, partial):
            obj = obj.func
        if inspect.isclass(obj):
            obj = obj.__init__
        return t.get_type_hints(obj)
    except Exception as e:
        logger.debug(f"Failed to get type hints for {obj!r}: {e}")
        return {}


def _defer(value: T) -> t.Callable[[], T]:
    """Wrap a value in a factory returning it."""

    def defer() -> T:
        return value

    defer.__name__ = f"factory_{type(value).__name__}"
    return defer


class Dependency(pydantic.BaseModel, t.Generic[T]):
    """A Monadic type which wraps a value with lifecycle and allows simple transformations."""

    model_config = pydantic.ConfigDict(arbitrary_types_allowed=True)

    factory: t.Callable[..., T]
    """The factory of the dependency, or a deferred wrapper around an instance."""
    lifecycle: Lifecycle = Lifecycle.SINGLETON
    """The lifecycle of the dependency."""

    _instance: t.Optional[T] = None
    """The instance of the dependency once resolved."""
    _is_resolved: bool = False
    """Flag to indicate if the dependency has been unwrapped."""

    @pydantic.model_validator(mode="before")
    @classmethod
    def _ensure_lifecycle(cls, data: t.Any) -> t.Any:
        """Ensure a valid lifecycle is set for the dependency."""
        if isinstance(data, dict):
            factory = data["factory"]
            lc = data.get(
                "lifecycle",
                Lifecycle.SINGLETON if callable(factory) else Lifecycle.INSTANCE,
            )
            if isinstance(lc, str):
                lc = Lifecycle[lc.upper()]
            if not isinstance(lc, Lifecycle):
                raise ValueError(f"Invalid lifecycle {lc=}")
            if not (lc.is_instance or callable(factory)):
                raise ValueError(f"Value must be callable for {lc=}")
            if lc.is_instance:
                data["factory"] = _defer(factory)
            data["lifecycle"] = lc
        return data

    @classmethod
    def instance(cls, instance: t.Any) -> "Dependency":
        """Create a dependency from an instance.

        Args:
            instance: The instance to use as the dependency.

        Returns:
            A new Dependency object with the instance lifecycle.
        """
        return cls(factory=instance, lifecycle=Lifecycle.INSTANCE)

    @classmethod
    def singleton(
        cls, factory: t.Callable[..., T], *args: t.Any, **kwargs: t.Any
    ) -> "Dependency":
        """Create a singleton dependency.

        Args:
            factory: The factory function to create the dependency.
            args: Positional arguments to pass to the factory.
            kwargs: Keyword arguments to pass to the factory.

        Returns:
            A new Dependency object with the singleton lifecycle.
        """
        if callable(factory) and (args or kwargs):
            factory = partial(factory, *args, **kwargs)
        return cls(factory=factory, lifecycle=Lifecycle.SINGLETON)

    @classmethod
    def prototype(
        cls, factory: t.Callable[..., T], *args: t.Any, **kwargs: t.Any
    ) -> "Dependency":
        """Create a prototype dependency.

        Args:
            factory: The factory function to create the dependency.
            args: Positional arguments to pass to the factory.
            kwargs: Keyword arguments to pass to the factory.

        Returns:
            A new Dependency object with the prototype lifecycle.
        """
        if callable(factory) and (args or kwargs):
            factory = partial(factory, *args, **kwargs)
        return cls(factory=factory, lifecycle=Lifecycle.PROTOTYPE)

    @classmethod
    def scoped(
        cls, factory: t.Callable[..., T], *args: t.Any, **kwargs: t.Any
    ) -> "Dependency":
        """Create a scoped dependency."""
        if callable(factory) and (args or kwargs):
            factory = partial(factory, *args, **kwargs)
        return cls(factory=factory, lifecycle=Lifecycle.SCOPED)

    @classmethod
    def wrap(cls, obj: t.Any, *args: t.Any, **kwargs: t.Any) -> Self:
        """Wrap an object as a dependency.

        Assumes singleton lifecycle for callables.

        Args:
            obj: The object to wrap.

        Returns:
            A new Dependency object with the object as the factory.
        """
        if callable(obj):
            if args or kwargs:
                obj = partial(obj, *args, **kwargs)
            return cls(factory=obj, lifecycle=Lifecycle.SINGLETON)
        return cls(factory=obj, lifecycle=Lifecycle.INSTANCE)

    def map(
        self,
        *funcs: t.Callable[[t.Callable[..., T]], t.Callable[..., T]],
        idempotent: bool = False,
    ) -> Self:
        """Apply a sequence of transformations to the wrapped factory.

        The transformations are applied in order. This is a no-op if the dependency is
        already resolved and idempotent is True or the dependency is an instance.

        Args:
            funcs: The functions to apply to the wrapped factory.
            idempotent: If True, allow transformations on resolved dependencies to be a no-op.

        Returns:
             The Dependency object with the transformations applied.
        """
        if self.lifecycle.is_instance:
            return self
        if self._is_resolved:
            if idempotent:
                return self
            raise DependencyMutationError(
                f"Dependency {self!r} is already resolved, cannot apply transformations to factory"
            )
        factory = self.factory
        for func in funcs:
            factory = func(factory)
        self.factory = factory
        return self

    def unwrap(
        self,
        injector: t.Optional[
            t.Callable[[t.Callable[..., T]], t.Callable[..., T]]
        ] = None,
    ) -> T:
        """Unwrap the value from the factory.

        Args:
            injector: Wraps the factory before it is called, typically to inject its
                parameters.
        """
        if self._is_resolved:
            return t.cast(T, self._instance)
        factory = self.factory
        if injector is not None and self.lifecycle.is_deferred:
            factory = injector(factory)
        if self.lifecycle.is_prototype or self.lifecycle.is_scoped:
            return factory()
        self._instance = factory()
        self._is_resolved = True
        return self._instance

    def __str__(self) -> str:
        return f"{self.factory} ({self.lifecycle})"

    def __repr__(self) -> str:
        return f"<Dependency {self!s}>"

    def __call__(self) -> T:
        """Alias for unwrap."""
        return self.unwrap()

    def try_infer_type(self) -> t.Optional[t.Type[T]]:
        """Get the effective type of the dependency."""
        if self.lifecycle.is_instance or self._is_resolved:
            return _unwrap_type(type(self.unwrap()))
        if inspect.isclass(self.factory):
            return _unwrap_type(self.factory)
        if inspect.isfunction(self.factory):
            if hint := _safe_get_type_hints(inspect.unwrap(self.factory)).get("return"):
                return _unwrap_type(hint)
        return None

    def generate_key(self, name: DependencyKey) -> t.Union[str, TypedKey]:
        """Generate a typed key for the dependency.

        Args:
            name: The name of the dependency, or the service type it is registered for.

        Returns:
            A typed key if the type can be inferred, else the name.
        """
        if isinstance(name, TypedKey):
            return name
        elif inspect.isclass(name):
            return _type_key(name)
        elif isinstance(name, tuple):
            return TypedKey(name[0], name[1])
        hint = self.try_infer_type()
        return TypedKey(name, hint) if hint and not _is_ambiguous_type(hint) else name


class DependencyScope:
    """A unit of work in which scoped dependencies are created at most once."""

    def __init__(self, registry: "DependencyRegistry") -> None:
        self.registry = registry
        self.instances: t.Dict[int, t.Tuple[Dependency, t.Any]] = {}
        """Scoped instances keyed by the identity of their dependency."""
        self.closed = False

    def resolve(self, name_or_key: DependencyKey, must_exist: bool = False) -> t.Any:
        """Resolve a dependency with this scope active."""
        if self.closed:
            raise DependencyScopeError("Cannot resolve from a closed scope")
        token = _ACTIVE_SCOPE.set(self)
        try:
            return self.registry.resolve(name_or_key, must_exist=must_exist)
        finally:
            _ACTIVE_SCOPE.reset(token)

    resolve_or_raise = partialmethod(resolve, must_exist=True)

    def __getitem__(self, name: DependencyKey) -> t.Any:
        return self.resolve(name, must_exist=True)

    def get_or_create(
        self, dependency: Dependency, factory: t.Callable[[], t.Any]
    ) -> t.Any:
        """Get the instance of a dependency in this scope, creating it once."""
        entry = self.instances.get(id(dependency))
        if entry is None or entry[0] is not dependency:
            entry = self.instances[id(dependency)] = (dependency, factory())
        return entry[1]

    def forget(self, dependency: Dependency) -> None:
        """Drop the instance of a dependency from this scope."""
        entry = self.instances.get(id(dependency))
        if entry is not None and entry[0] is dependency:
            del self.instances[id(dependency)]

    def close(self) -> None:
        """Release the scoped instances."""
        self.instances.clear()
        self.closed = True

    def __repr__(self) -> str:
        return f"<DependencyScope {len(self.instances)} instances closed={self.closed}>"


_ACTIVE_SCOPE: ContextVar[t.Optional[DependencyScope]] = ContextVar(
    "startup_orchestration_active_scope", default=None
)
"""The scope used to cache scoped dependencies in the current context."""


class DependencyRegistry(t.MutableMapping[DependencyKey, Dependency]):
    """A registry for dependencies with lifecycle management.

    Dependencies can be registered with a name, a typed key or a bare service type.
    Typed keys are tuples of a name and a type hint. Dependencies can be added with a
    lifecycle, which can be one of prototype, singleton, scoped, or instance.
    Dependencies can be retrieved by name, typed key or type, and can be wired into
    callables to resolve a dependency graph.
    """

    lifecycle = Lifecycle

    def __init__(self, strict: bool = False) -> None:
        """Initialize the registry.

        Args:
            strict: If True, do not inject an untyped lookup for a typed dependency.
        """
        self.strict = strict
        self._typed_dependencies: t.Dict[TypedKey, Dependency] = {}
        self._untyped_dependencies: t.Dict[str, Dependency] = {}
        self._resolving: t.Set[t.Union[str, TypedKey]] = set()
        self._root_scope = DependencyScope(self)

    @property
    def dependencies(self) -> ChainMap[t.Any, Dependency]:
        """Get all dependencies."""
        return ChainMap(self._typed_dependencies, self._untyped_dependencies)

    def add(
        self,
        key: DependencyKey,
        value: t.Any,
        lifecycle: t.Optional[Lifecycle] = None,
        override: bool = False,
        init_args: t.Tuple[t.Any, ...] = (),
        init_kwargs: t.Optional[t.Dict[str, t.Any]] = None,
    ) -> None:
        """Register a dependency with the container.

        Args:
            key: The name, typed key or service type of the dependency.
            value: The factory or instance of the dependency.
            lifecycle: The lifecycle of the dependency.
            override: If True, override an existing dependency.
            init_args: Arguments to initialize the factory with.
            init_kwargs: Keyword arguments to initialize the factory with.
        """
        if lifecycle is None:
            lifecycle = Lifecycle.SINGLETON if callable(value) else Lifecycle.INSTANCE

        # Bind initialization args early so they are not carried around
        if callable(value) and (init_args or init_kwargs):
            value = partial(value, *init_args, **(init_kwargs or {}))

        self.add_from_dependency(
            key, Dependency(factory=value, lifecycle=lifecycle), override=override
        )

    add_prototype = partialmethod(add, lifecycle=Lifecycle.PROTOTYPE)
    add_singleton = partialmethod(add, lifecycle=Lifecycle.SINGLETON)
    add_scoped = partialmethod(add, lifecycle=Lifecycle.SCOPED)
    add_instance = partialmethod(add, lifecycle=Lifecycle.INSTANCE)

    def add_from_dependency(
        self, key: DependencyKey, dependency: Dependency, override: bool = False
    ) -> None:
        """Add a Dependency object to the container.

        Args:
            key: The name, typed key or service type of the dependency.
            dependency: The dependency object.
            override: If True, override an existing dependency
        """
        dependency_key = dependency.generate_key(key)
        if self.has(dependency_key) and not override:
            raise ValueError(
                f'Dependency "{dependency_key}" is already registered, use a different name to avoid conflicts'
            )
        replaced = [self.dependencies.get(dependency_key)]
        if isinstance(dependency_key, TypedKey):
            replaced.append(self._untyped_dependencies.get(dependency_key.name))
            self._typed_dependencies[dependency_key] = dependency
            # Allow untyped access to typed dependencies for convenience if not strict
            # or if the hint is not a distinct type
            if not self.strict or _is_ambiguous_type(dependency_key.type_):
                self._untyped_dependencies[dependency_key.name] = dependency
        else:
            self._untyped_dependencies[dependency_key] = dependency
        for previous in replaced:
            if previous is not None:
                self._forget(previous)
        logger.debug(f"Registered {dependency_key} as {dependency.lifecycle}")

    def remove(self, name_or_key: DependencyKey) -> None:
        """Remove a dependency by name or key from the container.

        Args:
            name_or_key: The name, typed key or service type of the dependency.
        """
        key = _normalize_key(name_or_key)
        if isinstance(key, str):
            if key in self._untyped_dependencies:
                self._forget(self._untyped_dependencies.pop(key))
            else:
                raise KeyError(f'Dependency "{key}" is not registered')
        elif key in self._typed_dependencies:
            dependency = self._typed_dependencies.pop(key)
            if self._untyped_dependencies.get(key.name) is dependency:
                del self._untyped_dependencies[key.name]
            self._forget(dependency)
        else:
            raise KeyError(f'Dependency "{key}" is not registered')

    def _forget(self, dependency: Dependency) -> None:
        """Evict the root scope instance of a dependency no longer registered."""
        if not any(d is dependency for d in self.dependencies.values()):
            self._root_scope.forget(dependency)

    def clear(self) -> None:
        """Clear all dependencies and scoped instances."""
        self._typed_dependencies.clear()
        self._untyped_dependencies.clear()
        self._root_scope.instances.clear()

    def has(self, name_or_key: DependencyKey) -> bool:
        """Check if a dependency is registered.

        Args:
            name_or_key: The name, typed key or service type of the dependency.
        """
        return _normalize_key(name_or_key) in self.dependencies

    def resolve(self, name_or_key: DependencyKey, must_exist: bool = False) -> t.Any:
        """Get a dependency.

        Args:
            name_or_key: The name, typed key or service type of the dependency.
            must_exist: If True, raise KeyError if the dependency is not found.

        Returns:
            The dependency if found, else None.
        """
        key = _normalize_key(name_or_key)

        if isinstance(key, str):
            if key not in self._untyped_dependencies:
                if must_exist:
                    raise KeyError(f'Dependency "{key}" is not registered')
                return None
            dep = self._untyped_dependencies[key]
        else:
            if _is_union(key.type_):
                candidates = map(_unwrap_type, t.get_args(key.type_))
            else:
                candidates = [key.type_]
            for type_ in candidates:
                key = TypedKey(key.name, type_)
                if key in self._typed_dependencies:
                    break
            else:
                if must_exist:
                    raise KeyError(f'Dependency "{key}" is not registered')
                return None
            dep = self._typed_dependencies[key]

        if dep.lifecycle.is_instance:
            return dep.unwrap()

        # Detect dependency cycles
        if key in self._resolving:
            raise DependencyCycleError(
                f"Dependency cycle detected while resolving {key} for {dep.factory!r}"
            )

        # Handle the lifecycle of the dependency, recursively resolving dependencies
        self._resolving.add(key)
        try:
            if dep.lifecycle.is_scoped:
                return self._resolve_scoped(key, dep)
            return dep.unwrap(self.wire)
        finally:
            self._resolving.remove(key)

    resolve_or_raise = partialmethod(resolve, must_exist=True)

    def _resolve_scoped(self, key: t.Union[str, TypedKey], dep: Dependency) -> t.Any:
        scope = _ACTIVE_SCOPE.get()
        if scope is None or scope.registry is not self:
            scope = self._root_scope
        return scope.get_or_create(dep, self.wire(dep.factory))

    @contextlib.contextmanager
    def scope(self) -> t.Iterator[DependencyScope]:
        """Open a scope in which scoped dependencies are shared.

        Resolutions made through the registry inside the block use the scope as well.
        """
        scope = DependencyScope(self)
        token = _ACTIVE_SCOPE.set(scope)
        try:
            yield scope
        finally:
            _ACTIVE_SCOPE.reset(token)
            scope.close()

    def __contains__(self, name: t.Any) -> bool:
        """Check if a dependency is registered."""
        return self.has(name)

    def __getitem__(self, name: DependencyKey) -> t.Any:
        """Get a dependency. Raises KeyError if not found."""
        return self.resolve(name, must_exist=True)

    def __setitem__(self, name: DependencyKey, value: t.Any) -> None:
        """Add a dependency. Defaults to singleton lifecycle if callable, else instance."""
        self.add(name, value, override=True)

    def __delitem__(self, name: DependencyKey) -> None:
        """Remove a dependency."""
        self.remove(name)

    def wire(self, func_or_cls: t.Callable[P, T]) -> t.Callable[..., T]:
        """Inject dependencies into a function.

        Parameters are looked up by name and annotation first, then by the annotated
        type alone, then by name alone.

        Args:
            func_or_cls: The function or class to inject dependencies into.

        Returns:
            A function that can be called with dependencies injected
        """
        if not callable(func_or_cls):
            return func_or_cls

        sig = inspect.signature(func_or_cls)
        hints = _safe_get_type_hints(func_or_cls)

        @wraps(func_or_cls)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            bound_args = sig.bind_partial(*args, **kwargs)
            for name, param in sig.parameters.items():
                if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                    continue
                if param.default not in (param.empty, None):
                    continue
                if name in bound_args.arguments:
                    continue
                dep = None
                annotation = hints.get(name, param.annotation)
                if not _is_ambiguous_type(annotation) and not isinstance(
                    annotation, str
                ):
                    dep = self.resolve((name, annotation))
                    if dep is None and inspect.isclass(annotation):
                        dep = self.resolve(annotation)
                if dep is None:
                    dep = self.resolve(name)
                if dep is not None:
                    bound_args.arguments[name] = dep
            return func_or_cls(*bound_args.args, **bound_args.kwargs)

        return wrapper

    def __call__(
        self, func_or_cls: t.Callable[P, T], *args: t.Any, **kwargs: t.Any
    ) -> T:
        """Invoke a callable with dependencies injected from the registry.

        Args:
            func_or_cls: The function or class to invoke.
            args: Positional arguments to pass to the callable.
            kwargs: Keyword arguments to pass to the callable.

        Returns:
            The result of the callable
        """
        wired_f = self.wire(func_or_cls)
        if not callable(wired_f):
            return wired_f
        return wired_f(*args, **kwargs)

    def __iter__(self) -> t.Iterator[t.Union[str, TypedKey]]:
        """Iterate over dependency names."""
        return iter(self.dependencies)

    def __len__(self) -> int:
        """Return the number of dependencies."""
        return len(self.dependencies)

    def __repr__(self) -> str:
        return f"<DependencyRegistry {list(self.dependencies.keys())}>"

    def __str__(self) -> str:
        return repr(self)

    def __bool__(self) -> bool:
        """True if the registry has dependencies."""
        return bool(self.dependencies)

    def __or__(self, other: "DependencyRegistry") -> "DependencyRegistry":
        """Merge two registries like pythons dict union overload."""
        self._untyped_dependencies = {
            **self._untyped_dependencies,
            **other._untyped_dependencies,
        }
        self._typed_dependencies = {
            **self._typed_dependencies,
            **other._typed_dependencies,
        }
        return self
