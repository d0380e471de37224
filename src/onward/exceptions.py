from pathlib import Path


class OnwardException(Exception):
    """Base exception for onward applications."""
    message: str

    def __init__(self, message: str | None = None, *args):
        super().__init__(message, *args)
        if message is not None:
            self.message = message
        elif args and args[0]:
            self.message = str(args[0])
        else:
            self.message = self.__class__.__name__

    def __str__(self) -> str:
        return self.message


class RedefinitionError(OnwardException):
    """Raised when a dispatch subclass or plugin replaces a reserved DSL name."""

    def __init__(self, name: str, owner: type):
        super().__init__(
            f"'{name}' is reserved by onward and cannot be redefined on {owner.__name__}"
        )
        self.name = name
        self.owner = owner


class MissingSessionError(OnwardException, RuntimeError):
    """Raised when the session is used but no session middleware was installed."""


class ConfigurationError(OnwardException):
    """Raised when configuration cannot be loaded."""

    def __init__(
        self,
        message: str,
        config_filename: str | None = None,
        working_directory: Path | None = None,
    ):
        super().__init__(message)
        self.config_filename = config_filename
        self.working_directory = working_directory


class Halt(BaseException):
    """Commits a response and unwinds every clause up to the dispatch boundary.

    Derives from BaseException so ``except Exception`` blocks in handler code
    never intercept it.
    """

    def __init__(self, response):
        super().__init__(response)
        self.response = response
