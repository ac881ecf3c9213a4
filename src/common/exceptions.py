"""
Node Features Exception Hierarchy

Provides clear, actionable error messages with structured information
for logging, host feedback, and programmatic error handling.
"""

from typing import Optional, Dict, Any


class NodeFeaturesError(Exception):
    """
    Base exception for all node feature errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context as key-value pairs
        cause: Original exception that caused this error
        recoverable: Whether the error is recoverable
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        self.recoverable = recoverable

    def __str__(self):
        s = f"[{self.code}] {self.message}"
        if self.details:
            s += f" (details: {self.details})"
        if self.cause:
            s += f" caused by: {self.cause}"
        return s

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# cpuinfo errors
# =============================================================================

class CpuinfoError(NodeFeaturesError):
    """Base for cpuinfo extraction errors."""
    pass


class CpuinfoReadError(CpuinfoError):
    """The cpuinfo source could not be opened or read."""
    def __init__(self, path: str, reason: str, cause: Optional[Exception] = None):
        super().__init__(
            f"Cannot read cpuinfo from {path}: {reason}",
            code="CPUINFO_READ_FAILED",
            details={"path": path, "reason": reason},
            cause=cause,
        )


class LineBufferError(CpuinfoError):
    """The line buffer could not grow to hold the current line."""
    def __init__(self, capacity: int, path: Optional[str] = None):
        details: Dict[str, Any] = {"capacity": capacity}
        if path:
            details["path"] = path
        super().__init__(
            f"Line buffer exhausted at {capacity} bytes",
            code="LINE_BUFFER_EXHAUSTED",
            details=details,
        )


# =============================================================================
# PCI errors
# =============================================================================

class PciError(NodeFeaturesError):
    """Base for PCI detection errors."""
    pass


class PciAccessError(PciError):
    """PCI bus enumeration failed."""
    def __init__(self, reason: str, cause: Optional[Exception] = None):
        super().__init__(
            f"Unable to enumerate PCI devices: {reason}",
            code="PCI_ACCESS_FAILED",
            details={"reason": reason},
            cause=cause,
        )


# =============================================================================
# Configuration errors
# =============================================================================

class ConfigError(NodeFeaturesError):
    """Base for configuration errors."""
    pass


class InvalidConfigError(ConfigError):
    """Invalid configuration."""
    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration: {field}={value}: {reason}",
            code="INVALID_CONFIG",
            details={"field": field, "value": str(value), "reason": reason},
        )


class MissingConfigError(ConfigError):
    """Configuration file named explicitly does not exist."""
    def __init__(self, path: str):
        super().__init__(
            f"Configuration file not found: {path}",
            code="MISSING_CONFIG",
            details={"path": path},
            recoverable=False,
        )
