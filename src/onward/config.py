import importlib
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar

import yaml

from onward.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENVIRONMENT_VARIABLE = "ONWARD_ENVIRONMENT"
DEFAULT_ENVIRONMENT = "prod"

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


class Config:
    def __init__(self, config: dict):
        self.config = config

    def get[T](self, key: str, model: type[T] | None = None, default: Any = None) -> T:
        if key not in self.config:
            if model is not None:
                raise KeyError(key)

            return default

        if model is None:
            return self.config[key]

        value = self.config[key]
        if getattr(model, "__is_collection__", False):
            return [model.from_dict(item) for item in value or []]

        return model.from_dict(value or {})

    def __contains__(self, key: str) -> bool:
        return key in self.config

    @classmethod
    def load_config(cls, name: str, directory: str | Path = ".") -> "Config":
        match directory:
            case ".":
                path = Path()

            case str():
                path = Path(directory)

            case Path():
                path = directory

            case _:
                raise ValueError(f"Invalid directory: {directory}")

        file_path = path / name
        logger.debug(f"Loading configuration from {file_path}")
        try:
            with file_path.open("r") as f:
                config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to load configuration from '{file_path}': {e}", name, path
            ) from e

        if config is None:
            config = {}

        if not isinstance(config, dict):
            raise ConfigurationError(
                f"Invalid configuration format in '{file_path}'. Expected a mapping.", name, path
            )

        return Config(substitute_env_vars(config))


class ConfigModel:
    """Typed view over one top-level key of the configuration."""
    __model_key__: ClassVar[str]
    __is_collection__: ClassVar[bool]

    def __init_subclass__(cls, **kwargs):
        cls.__model_key__ = kwargs.pop("model_key", cls.__name__)
        cls.__is_collection__ = kwargs.pop("is_collection", False)
        super().__init_subclass__(**kwargs)

    @classmethod
    def from_dict(cls, config: dict):
        return cls(**config)


@dataclass
class AppConfig(ConfigModel, model_key="app"):
    handler: str | None = None
    settings: dict[str, Any] = field(default_factory=dict)


@dataclass
class MiddlewareConfig(ConfigModel, model_key="middleware", is_collection=True):
    entry: str = ""
    config: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, config: dict) -> "MiddlewareConfig":
        if "entry" not in config:
            raise ConfigurationError(f"Middleware config is missing the 'entry' key: {config!r}")

        return cls(entry=config["entry"], config=config.get("config") or {})


def substitute_env_vars(value: Any) -> Any:
    """Replaces ``${VAR_NAME}`` references in string values with environment variables.

    Raises:
        ConfigurationError: If a referenced environment variable is not set
    """
    match value:
        case str():
            return _ENV_PATTERN.sub(_replace_env_var, value)

        case dict():
            return {key: substitute_env_vars(item) for key, item in value.items()}

        case list():
            return [substitute_env_vars(item) for item in value]

        case _:
            return value


def _replace_env_var(match: re.Match) -> str:
    name = match.group(1)
    env_value = os.getenv(name)
    if env_value is None:
        raise ConfigurationError(f"Required environment variable '{name}' is not set")

    return env_value


def import_from_string(import_str: str) -> Any:
    """Imports an object given as ``"module.path:attribute"``.

    Nested attributes are supported (``"module:Class.attribute"``).

    Raises:
        ConfigurationError: If the string is malformed or the import fails
    """
    if ":" not in import_str:
        raise ConfigurationError(
            f"Invalid import string format '{import_str}'. Expected 'module.path:symbol'."
        )

    module_path, object_path = import_str.split(":", 1)
    try:
        target = importlib.import_module(module_path)
        for part in object_path.split("."):
            target = getattr(target, part)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Failed to import '{import_str}': {e}") from e

    return target


def get_environment(environment: str | None = None) -> str:
    if environment:
        return environment

    return os.environ.get(ENVIRONMENT_VARIABLE, DEFAULT_ENVIRONMENT)


def get_config_path(working_directory: str | Path | None, environment: str | None) -> Path:
    match working_directory:
        case str():
            working_directory = Path(working_directory)
        case Path():
            pass
        case None:
            working_directory = Path.cwd()
        case _:
            raise ValueError(f"Invalid working directory: {working_directory}")

    config_filename = f"onward.{get_environment(environment)}.yaml"
    if not working_directory.exists():
        raise ConfigurationError(
            f"Configuration file '{config_filename}' not found, the working directory {working_directory} does not "
            f"exist or is not a valid path.",
            config_filename,
            working_directory,
        )

    config_path = working_directory / config_filename
    if not config_path.exists():
        raise ConfigurationError(
            f"Configuration file '{config_path}' not found, confirm that the environment is set correctly and "
            f"that the file exists.",
            config_filename,
            working_directory,
        )

    return config_path
