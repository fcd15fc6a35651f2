"""Custom exceptions used throughout the karel package.

Runtime faults caused by the world (walls, missing beepers) are not
exceptions: the execution engine reports them as ``StepResult`` values.
The classes here signal malformed input and caller misuse.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class KarelError(Exception):
    """Base exception for all karel errors.

    All karel-specific exceptions inherit from this class, so callers can
    catch every one of them with a single except clause.
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Additional context about the error
        """

        super().__init__(message)
        self.details = details or {}


class ConfigurationError(KarelError):
    """Raised when there's an error in configuration.

    This includes:
    - Invalid configuration value
    - Missing required configuration
    - Unreadable or malformed config file
    """

    def __init__(
        self,
        config_key: Optional[str] = None,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """Initialize configuration error.

        Args:
            config_key: The configuration key that caused the error
            message: Description of what's wrong. If omitted, config_key is
                treated as the message and the key defaults to "configuration".
            details: Additional context
        """
        if message is None:
            message = config_key or "Invalid configuration"
            config_key = "configuration"
        if config_key is None:
            config_key = "configuration"

        full_message = f"Configuration error for '{config_key}': {message}"
        super().__init__(message=full_message, details=details)
        self.config_key = config_key


class CompileErrorKind(Enum):
    SYNTAX_ERROR = "SyntaxError"
    UNKNOWN_IDENTIFIER = "UnknownIdentifier"
    ARITY_MISMATCH = "ArityMismatch"
    MISSING_ENTRY_PROCEDURE = "MissingEntryProcedure"


class CompileError(KarelError):
    """Raised by the parser when Karel source cannot be compiled.

    ``compile_source`` catches it and hands it back inside a
    ``CompileResult``; it never escapes the compiler.
    """

    def __init__(
        self,
        kind: CompileErrorKind,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        if line is not None:
            details = details or {}
            details["line"] = line
            details["column"] = column
            full_message = f"{kind.value} at line {line}, column {column}: {message}"
        else:
            full_message = f"{kind.value}: {message}"

        super().__init__(message=full_message, details=details)
        self.kind = kind
        self.reason = message
        self.line = line
        self.column = column

    @property
    def location(self) -> Optional[tuple[int, Optional[int]]]:
        if self.line is None:
            return None
        return (self.line, self.column)


class WorldFormatError(KarelError):
    """Raised when a world description cannot be parsed.

    Examples:
    - Unknown line keyword in a ``.w`` file
    - Robot placed outside the grid
    - Negative beeper count
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        if line is not None:
            details = details or {}
            details["line"] = line
            message = f"line {line}: {message}"
        super().__init__(message=f"Invalid world: {message}", details=details)
        self.line = line


class WorldLoadError(KarelError):
    """Raised when a world file cannot be found or read."""

    def __init__(self, world_name: str, message: Optional[str] = None):
        if message is None:
            message = "world not found"
        super().__init__(
            message=f"Could not load world '{world_name}': {message}",
            details={"world": world_name},
        )
        self.world_name = world_name


class SchedulerError(KarelError):
    """Raised when a scheduler request is not valid in its current state."""


class WorldNotLoadedError(SchedulerError):
    """Raised when a run is requested before any world finished loading."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "No world is loaded yet")
