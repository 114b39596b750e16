"""Configuration builder for application startup."""

import ast
import io
import json
import os
import re
import string
import sys
import typing as t
from pathlib import Path

import yaml
from box import Box

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


class FileSource(t.NamedTuple):
    """A configuration file, resolved against the builder base path at build time."""

    path: Path
    optional: bool = False


class EnvironmentSource(t.NamedTuple):
    """Environment variables, optionally filtered and stripped by a prefix."""

    prefix: str = ""


ConfigurationSource = t.Union[
    str,
    Path,
    FileSource,
    EnvironmentSource,
    t.Mapping[str, t.Any],
    t.Callable[[], "ConfigurationSource"],
]


__all__ = [
    "ConfigurationSource",
    "ConfigBox",
    "ConfigurationBuilder",
    "EnvironmentSource",
    "FileSource",
    "add_custom_converter",
    "remove_converter",
]


def _to_bool(value: str) -> bool:
    """Convert a string to a boolean value."""
    return value.lower() in ("true", "yes", "1")


def _make_eval_func(type_: t.Type):
    """Create a function to evaluate a py literal string with type assertion."""

    def _eval(value: str) -> t.Any:
        v = ast.literal_eval(value)
        if not isinstance(v, type_):
            raise ValueError(f"Value is not of type {type_}")
        return v

    return _eval


_CONVERTERS = {
    "json": json.loads,
    "int": int,
    "float": float,
    "str": str,
    "bool": _to_bool,
    "path": os.path.abspath,
    "dict": _make_eval_func(dict),
    "list": _make_eval_func(list),
    "tuple": _make_eval_func(tuple),
    "set": _make_eval_func(set),
    "resolve": None,
}
"""Converters for configuration values."""

_CONVERTER_PATTERN = re.compile(r"@(\w+) ", re.IGNORECASE)
"""Pattern to match converters in a string."""

_NESTING_DELIMITER = "__"
"""Separator for nested keys in environment variable names."""


def add_custom_converter(name: str, converter: t.Callable[[str], t.Any]) -> None:
    """Add a custom converter to the configuration system."""
    if name in _CONVERTERS:
        raise ValueError(f"Converter {name} already exists.")
    _CONVERTERS[name] = converter


def get_converter(name: str) -> t.Callable[[str], t.Any]:
    """Get a converter from the configuration system."""
    return _CONVERTERS[name]


def remove_converter(name: str) -> None:
    """Remove a custom converter from the configuration system."""
    if name not in _CONVERTERS:
        raise ValueError(f"Converter {name} does not exist.")
    del _CONVERTERS[name]


def _expand_env_vars(template: str, **env_overrides: t.Any) -> str:
    """Resolve environment variables in the format ${VAR} or $VAR."""
    return string.Template(template).safe_substitute(env_overrides, **os.environ)


def _load_file(
    path: t.Union[str, Path],
    parser: t.Callable[[str], t.Any] = json.loads,
    **env_overrides: t.Any,
) -> t.Any:
    """Read a file from the given path and parse it using the specified parser."""
    with open(path, mode="r", encoding="utf-8") as f:
        rendered = _expand_env_vars(f.read(), **env_overrides)
    return parser(rendered) or {}


_PARSERS: t.Dict[str, t.Callable[[str], t.Any]] = {
    ".json": json.loads,
    ".yaml": lambda s: yaml.safe_load(io.StringIO(s)),
    ".yml": lambda s: yaml.safe_load(io.StringIO(s)),
    ".toml": tomllib.loads,
}
"""Parsers keyed by file suffix."""


def _environment_to_mapping(prefix: str = "") -> t.Dict[str, t.Any]:
    """Collect environment variables into a nested mapping.

    Variables not starting with the prefix are skipped. The prefix is stripped and a
    double underscore in the remaining name denotes a nested section.
    """
    mapping: t.Dict[str, t.Any] = {}
    for name, value in os.environ.items():
        if not name.startswith(prefix):
            continue
        parts = [p for p in name[len(prefix) :].split(_NESTING_DELIMITER) if p]
        if not parts:
            continue
        node = mapping
        for part in parts[:-1]:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[parts[-1]] = value
    return mapping


class ConfigBox(Box):
    """Box that applies @ converters to configuration values."""

    def __getitem__(self, item: t.Any, _ignore_default: bool = False) -> t.Any:
        value = super().__getitem__(item, _ignore_default)
        if isinstance(value, str):
            return self._apply_converters(value)
        return value

    def values(self) -> t.ValuesView[t.Any]:  # type: ignore
        return t.cast(
            t.ValuesView[t.Any],
            [
                self._apply_converters(v) if isinstance(v, str) else v
                for v in super().values()
            ],
        )

    def section(self, key: str) -> "ConfigBox":
        """Get a nested section, or an empty box if the section does not exist."""
        try:
            value = self[key]
        except KeyError:
            return ConfigBox(box_dots=True)
        if not isinstance(value, t.Mapping):
            raise ValueError(f"Configuration key {key!r} is not a section")
        return ConfigBox(value, box_dots=True)

    def to_resolved_dict(self) -> t.Dict[str, t.Any]:
        """Convert to a plain dictionary with converters applied."""
        resolved = {}
        for key in self.keys():
            value = self[key]
            if isinstance(value, t.Mapping):
                if not isinstance(value, ConfigBox):
                    value = ConfigBox(value, box_dots=True)
                value = value.to_resolved_dict()
            resolved[key] = value
        return resolved

    def _apply_converters(self, data: str) -> t.Any:
        """Apply converters to a configuration value.

        Converters are prefixed with @. The following default converters are supported:
        - json: Convert to JSON object
        - int: Convert to integer
        - float: Convert to float
        - str: Convert to string
        - bool: Convert to boolean
        - path: Convert to absolute path
        - dict: Convert to dictionary
        - list: Convert to list
        - tuple: Convert to tuple
        - set: Convert to set
        - resolve: Resolve value from another key in the configuration

        Args:
            data: Configuration value to apply converters to.

        Raises:
            ValueError: If an unknown converter is used or if a conversion fails.

        Returns:
            Converted configuration value.
        """
        data = _expand_env_vars(data)
        converters = _CONVERTER_PATTERN.findall(data)
        if len(converters) == 0:
            return data
        base_v = _CONVERTER_PATTERN.sub("", data).lstrip()
        if not base_v:
            return None
        transformed_v = base_v
        for converter in reversed(converters):
            try:
                if converter.lower() == "resolve":
                    try:
                        transformed_v = self[transformed_v]
                    except KeyError as e:
                        raise ValueError(f"Key not found in resolver: {e}") from e
                else:
                    transformed_v = _CONVERTERS[converter.lower()](transformed_v)
            except KeyError as e:
                raise ValueError(f"Unknown converter: {converter}") from e
            except Exception as e:
                raise ValueError(f"Failed to convert value: {e}") from e
        return transformed_v


class ConfigurationBuilder:
    """Collects configuration sources and merges them into a single ConfigBox.

    Sources are applied in the order they were added, later sources overriding
    earlier ones. Relative file paths are resolved against the base path when the
    configuration is built, so the base path may be set before or after files are
    added.
    """

    def __init__(self, *sources: ConfigurationSource) -> None:
        self._sources: t.List[ConfigurationSource] = list(sources)
        self._base_path: t.Optional[Path] = None

    @property
    def sources(self) -> t.Tuple[ConfigurationSource, ...]:
        """The configuration sources in application order."""
        return tuple(self._sources)

    @property
    def base_path(self) -> Path:
        """The directory relative file sources are resolved against."""
        return self._base_path or Path.cwd()

    def set_base_path(self, path: t.Union[str, Path]) -> "ConfigurationBuilder":
        """Set the base path used to resolve relative file sources."""
        self._base_path = Path(path).expanduser().resolve()
        return self

    def add_source(self, source: ConfigurationSource) -> "ConfigurationBuilder":
        """Add an arbitrary configuration source."""
        self._sources.append(source)
        return self

    def add_file(
        self, path: t.Union[str, Path], optional: bool = False
    ) -> "ConfigurationBuilder":
        """Add a JSON, YAML or TOML file, selected by its suffix."""
        path = Path(path)
        if path.suffix not in _PARSERS:
            raise ValueError(f"Unsupported file format: {path.suffix}")
        return self.add_source(FileSource(path, optional))

    def add_json_file(
        self, path: t.Union[str, Path], optional: bool = False
    ) -> "ConfigurationBuilder":
        return self._add_typed_file(path, optional, (".json",))

    def add_yaml_file(
        self, path: t.Union[str, Path], optional: bool = False
    ) -> "ConfigurationBuilder":
        return self._add_typed_file(path, optional, (".yaml", ".yml"))

    def add_toml_file(
        self, path: t.Union[str, Path], optional: bool = False
    ) -> "ConfigurationBuilder":
        return self._add_typed_file(path, optional, (".toml",))

    def _add_typed_file(
        self, path: t.Union[str, Path], optional: bool, suffixes: t.Tuple[str, ...]
    ) -> "ConfigurationBuilder":
        path = Path(path)
        if path.suffix not in suffixes:
            raise ValueError(
                f"Expected a file ending with {' or '.join(suffixes)}, got {path.name}"
            )
        return self.add_source(FileSource(path, optional))

    def add_in_memory_collection(
        self, mapping: t.Mapping[str, t.Any]
    ) -> "ConfigurationBuilder":
        """Add an in-memory mapping of configuration values."""
        return self.add_source(dict(mapping))

    def add_environment_variables(self, prefix: str = "") -> "ConfigurationBuilder":
        """Add environment variables, read when the configuration is built."""
        return self.add_source(EnvironmentSource(prefix))

    def build(self) -> ConfigBox:
        """Load and merge configurations from all sources."""
        merged = ConfigBox(box_dots=True)
        for source in self._sources:
            merged.merge_update(Box(self._load(source), box_dots=True))
        return merged

    def _load(self, source: ConfigurationSource) -> t.Mapping[str, t.Any]:
        """Load configuration from a single source.

        Args:
            source: Configuration source to load.

        Returns:
            Configuration as a dictionary.
        """
        if isinstance(source, EnvironmentSource):
            return _environment_to_mapping(source.prefix)
        elif isinstance(source, FileSource):
            return self._load_path(source.path, source.optional)
        elif isinstance(source, t.Mapping):
            return source
        elif isinstance(source, (str, Path)):
            return self._load_path(Path(source), optional=False)
        elif callable(source):
            return self._load(source())
        else:
            raise TypeError(f"Invalid config source: {source}")

    def _load_path(self, path: Path, optional: bool) -> t.Mapping[str, t.Any]:
        path = path.expanduser()
        if not path.is_absolute():
            path = self.base_path / path
        if not path.exists():
            if optional:
                return {}
            raise FileNotFoundError(f"Configuration file not found: {path}")
        try:
            parser = _PARSERS[path.suffix]
        except KeyError as e:
            raise ValueError(f"Unsupported file format: {path.suffix}") from e
        return _load_file(path, parser=parser)
