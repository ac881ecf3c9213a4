"""
Optional Capability Management

Tracks optional subsystems (e.g. PCI detection) whose availability depends
on the installed environment, so callers can switch them off cleanly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Callable, Dict

logger = logging.getLogger(__name__)


@dataclass
class Capability:
    """
    An optional capability.

    Attributes:
        name: Capability name
        check: Function to check if the capability is usable
        description: Shown when listing capabilities
    """
    name: str
    check: Callable[[], bool]
    description: str = ""


class CapabilityRegistry:
    """
    Registry of optional capabilities with cached availability.

    Example:
        registry = CapabilityRegistry()
        registry.register(Capability(
            name="pci_detection",
            check=check_pyudev_available,
        ))

        if registry.is_available("pci_detection"):
            ...
    """

    def __init__(self):
        self._capabilities: Dict[str, Capability] = {}
        self._availability_cache: Dict[str, bool] = {}

    def register(self, capability: Capability):
        """Register a capability."""
        self._capabilities[capability.name] = capability
        # Clear cache when registering
        self._availability_cache.pop(capability.name, None)

    def is_available(self, name: str, use_cache: bool = True) -> bool:
        """
        Check if a capability is available.

        Args:
            name: Capability name
            use_cache: Use cached result if available
        """
        if name not in self._capabilities:
            return False

        if use_cache and name in self._availability_cache:
            return self._availability_cache[name]

        capability = self._capabilities[name]
        try:
            available = capability.check()
        except Exception as e:
            logger.debug(f"Capability check failed for {name}: {e}")
            available = False

        self._availability_cache[name] = available
        return available

    def clear_cache(self, name: Optional[str] = None):
        """
        Clear availability cache.

        Args:
            name: Specific capability to clear, or None for all
        """
        if name:
            self._availability_cache.pop(name, None)
        else:
            self._availability_cache.clear()

    def list_capabilities(self) -> Dict[str, bool]:
        """
        List all capabilities and their availability.

        Returns:
            Dict of capability_name -> is_available
        """
        return {
            name: self.is_available(name)
            for name in self._capabilities
        }


def check_pyudev_available() -> bool:
    """Check if pyudev can be imported."""
    try:
        import pyudev  # noqa: F401
        return True
    except ImportError:
        return False


PCI_SYSFS_PATH = Path("/sys/bus/pci/devices")


def check_pci_detection() -> bool:
    """PCI devices can be enumerated: pyudev imports and sysfs lists the bus."""
    if not check_pyudev_available():
        logger.debug("pyudev not installed, PCI detection disabled")
        return False
    if not PCI_SYSFS_PATH.is_dir():
        logger.debug(f"{PCI_SYSFS_PATH} not present, PCI detection disabled")
        return False
    return True


PCI_DETECTION = "pci_detection"

# Global capability registry
_global_registry = CapabilityRegistry()
_global_registry.register(Capability(
    name=PCI_DETECTION,
    check=check_pci_detection,
    description="PCI device features via pyudev",
))


def capability_available(name: str) -> bool:
    """Check if a capability is available."""
    return _global_registry.is_available(name)


def list_capabilities() -> Dict[str, bool]:
    """List the global capabilities and their availability."""
    return _global_registry.list_capabilities()
