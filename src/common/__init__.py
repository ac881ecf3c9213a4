"""
Node Features Common Utilities

Shared error handling, logging and synchronization helpers.
"""

from .exceptions import (
    NodeFeaturesError, CpuinfoError, CpuinfoReadError, LineBufferError,
    PciError, PciAccessError, ConfigError, InvalidConfigError, MissingConfigError,
)
from .decorators import handle_errors, timed
from .logging_config import setup_logging, LogContext
from .guarded import GuardedCell
from .capabilities import (
    Capability, CapabilityRegistry, capability_available,
    list_capabilities, PCI_DETECTION,
)

__all__ = [
    # Exceptions
    "NodeFeaturesError", "CpuinfoError", "CpuinfoReadError", "LineBufferError",
    "PciError", "PciAccessError", "ConfigError", "InvalidConfigError",
    "MissingConfigError",
    # Decorators
    "handle_errors", "timed",
    # Logging
    "setup_logging", "LogContext",
    # Synchronization
    "GuardedCell",
    # Capabilities
    "Capability", "CapabilityRegistry",
    "capability_available", "list_capabilities", "PCI_DETECTION",
]
