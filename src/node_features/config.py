#!/usr/bin/env python3
"""
Node Features - Configuration

Plugin settings, read from a JSON file:

    {
        "cpuinfo_path": "/proc/cpuinfo",
        "pci_detection": true,
        "pci_devices": {"0x10de": {"0x1db6": "PCI::GPU::V100"}}
    }

Every key is optional.
"""

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from common.exceptions import InvalidConfigError, MissingConfigError

from .line_reader import StreamLineReader
from .pci_matcher import (
    PCI_KNOWN_DEVICES,
    PCI_KNOWN_DEVICE_CLASS,
    PCI_KNOWN_DEVICE_CLASS_MASK,
    PciVendorDevices,
    vendor_table_from_mapping,
)

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "NODE_FEATURES_CONFIG"
DEFAULT_CONFIG_PATH = Path("/etc/node_features/cpuinfo.json")


@dataclass
class PluginConfig:
    """Settings for the cpuinfo node features plugin."""

    cpuinfo_path: str = "/proc/cpuinfo"
    chunk_size: int = StreamLineReader.MIN_CHUNK_SIZE
    max_line_capacity: Optional[int] = None     # None = unbounded
    pci_detection: bool = True
    pci_device_class: int = PCI_KNOWN_DEVICE_CLASS
    pci_device_class_mask: int = PCI_KNOWN_DEVICE_CLASS_MASK
    pci_devices: Optional[Dict[str, Dict[str, str]]] = None  # None = built-in table

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Check field values.

        Raises:
            InvalidConfigError: a field has an unusable value
        """
        if not isinstance(self.cpuinfo_path, str) or not self.cpuinfo_path:
            raise InvalidConfigError("cpuinfo_path", self.cpuinfo_path, "must be a non-empty path")
        if not _is_int(self.chunk_size) or self.chunk_size <= 0:
            raise InvalidConfigError("chunk_size", self.chunk_size, "must be a positive integer")
        if self.max_line_capacity is not None and (
            not _is_int(self.max_line_capacity) or self.max_line_capacity <= 0
        ):
            raise InvalidConfigError(
                "max_line_capacity", self.max_line_capacity, "must be a positive integer or null"
            )
        if not isinstance(self.pci_detection, bool):
            raise InvalidConfigError("pci_detection", self.pci_detection, "must be true or false")
        for name in ("pci_device_class", "pci_device_class_mask"):
            value = getattr(self, name)
            if not _is_int(value) or not 0 <= value <= 0xFFFFFF:
                raise InvalidConfigError(name, value, "must be a 24-bit integer")
        if self.pci_devices is not None:
            try:
                vendor_table_from_mapping(self.pci_devices)
            except (AttributeError, TypeError, ValueError) as e:
                raise InvalidConfigError("pci_devices", self.pci_devices, str(e))

    @property
    def pci_vendor_devices(self) -> Tuple[PciVendorDevices, ...]:
        if self.pci_devices is None:
            return PCI_KNOWN_DEVICES
        return vendor_table_from_mapping(self.pci_devices)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PluginConfig":
        """
        Build a config from parsed JSON.

        Raises:
            InvalidConfigError: unknown keys or bad values
        """
        if not isinstance(data, dict):
            raise InvalidConfigError("<root>", type(data).__name__, "must be a JSON object")

        known = {f.name for f in fields(cls)}
        for key in data:
            if key not in known:
                raise InvalidConfigError(key, data[key], "unknown setting")

        values = dict(data)
        for name in ("pci_device_class", "pci_device_class_mask"):
            if isinstance(values.get(name), str):
                try:
                    values[name] = int(values[name], 16)
                except ValueError:
                    raise InvalidConfigError(name, values[name], "not a hex number")
        return cls(**values)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def load_config(path: Union[str, Path, None] = None) -> PluginConfig:
    """
    Load the plugin configuration.

    With no path, $NODE_FEATURES_CONFIG or the default location is read,
    and a missing file simply yields the defaults.

    Raises:
        MissingConfigError: an explicitly named file does not exist
        InvalidConfigError: the file is not valid configuration
    """
    explicit = path is not None
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
    path = Path(path)

    if not path.exists():
        if explicit:
            raise MissingConfigError(str(path))
        logger.debug(f"No configuration at {path}, using defaults")
        return PluginConfig()

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidConfigError(str(path), "<file>", f"invalid JSON: {e}")
    except UnicodeDecodeError as e:
        raise InvalidConfigError(str(path), "<file>", f"not UTF-8 text: {e}")
    except OSError as e:
        raise InvalidConfigError(str(path), "<file>", f"unreadable: {e.strerror or e}")

    config = PluginConfig.from_dict(data)
    logger.debug(f"Loaded configuration from {path}: {config}")
    return config
