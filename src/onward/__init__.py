from onward.app import App
from onward.config import Config, ConfigModel
from onward.dispatch import Dispatch
from onward.exceptions import (
    ConfigurationError,
    Halt,
    MissingSessionError,
    OnwardException,
    RedefinitionError,
)
from onward.matchers import segment
from onward.response import Response

__all__ = [
    "App",
    "Config",
    "ConfigModel",
    "ConfigurationError",
    "Dispatch",
    "Halt",
    "MissingSessionError",
    "OnwardException",
    "RedefinitionError",
    "Response",
    "segment",
]
__version__ = "0.1.0"
