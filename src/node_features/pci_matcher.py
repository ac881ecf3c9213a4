#!/usr/bin/env python3
"""
Node Features - PCI Device Matcher

Enumerates PCI devices of a given class through udev and publishes a
feature for every device found in a static vendor/device table, e.g. the
GPU models present in a cluster:

    PCI::GPU::V100, PCI::GPU::A100, PCI::GPU::MI100, ...
"""

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

from common.exceptions import PciAccessError

from .codec import FEATURE_DELIMITER, PCI_PREFIX

try:
    import pyudev
    PYUDEV_AVAILABLE = True
except ImportError:
    PYUDEV_AVAILABLE = False

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PciDeviceFeature:
    """Feature published for one PCI device id."""

    device_id: int      # 16-bit PCI device id
    feature_name: str


@dataclass(frozen=True)
class PciVendorDevices:
    """Known devices of one PCI vendor."""

    vendor_id: int      # 16-bit PCI vendor id
    device_features: Tuple[PciDeviceFeature, ...]


@dataclass
class PciDevice:
    """A PCI device seen during enumeration."""

    pci_address: str    # e.g. "0000:3b:00.0"
    vendor_id: int
    device_id: int
    device_class: int   # 24-bit class code, e.g. 0x030200


NVIDIA_GPU_DEVICES = PciVendorDevices(
    vendor_id=0x10de,
    device_features=(
        PciDeviceFeature(0x15f7, "PCI::GPU::P100"),  # P100 PCIe, 12GB
        PciDeviceFeature(0x1db5, "PCI::GPU::V100"),  # V100 SXM2, 32GB
        PciDeviceFeature(0x1db6, "PCI::GPU::V100"),  # V100 PCIe, 32GB
        PciDeviceFeature(0x1eb8, "PCI::GPU::T4"),
        PciDeviceFeature(0x20b5, "PCI::GPU::A100"),  # A100 PCIe, 80GB
        PciDeviceFeature(0x2235, "PCI::GPU::A40"),
    ),
)

AMD_GPU_DEVICES = PciVendorDevices(
    vendor_id=0x1002,
    device_features=(
        PciDeviceFeature(0x66a1, "PCI::GPU::MI50"),
        PciDeviceFeature(0x738c, "PCI::GPU::MI100"),
    ),
)

PCI_KNOWN_DEVICES: Tuple[PciVendorDevices, ...] = (
    NVIDIA_GPU_DEVICES,
    AMD_GPU_DEVICES,
)

# Display controllers (base class 0x03), any subclass
PCI_KNOWN_DEVICE_CLASS = 0x030000
PCI_KNOWN_DEVICE_CLASS_MASK = 0xFF0000


def vendor_table_from_mapping(mapping: Mapping[str, Mapping[str, str]]) -> Tuple[PciVendorDevices, ...]:
    """
    Build a vendor table from {"0x10de": {"0x1db6": "PCI::GPU::V100"}}.

    Raises:
        ValueError: an id is not a 16-bit hex number, or a feature name
            is not a string starting with "PCI::"
    """
    table = []
    for vendor_hex, devices in mapping.items():
        vendor_id = _parse_id16(vendor_hex)
        features = tuple(
            PciDeviceFeature(_parse_id16(device_hex), _check_feature_name(name))
            for device_hex, name in devices.items()
        )
        table.append(PciVendorDevices(vendor_id, features))
    return tuple(table)


def _check_feature_name(name) -> str:
    # Must be a single PCI:: feature: recognized as owned and never split
    if (
        not isinstance(name, str)
        or not name.startswith(PCI_PREFIX)
        or len(name) == len(PCI_PREFIX)
        or FEATURE_DELIMITER in name
    ):
        raise ValueError(f"{name!r} is not a {PCI_PREFIX}<name> feature")
    return name


def _parse_id16(text: str) -> int:
    value = int(str(text), 16)
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"{text} is not a 16-bit PCI id")
    return value


class PciDeviceMatcher:
    """Matches enumerated PCI devices against a vendor/device table."""

    SUBSYSTEM = "pci"

    def __init__(
        self,
        vendor_devices: Sequence[PciVendorDevices] = PCI_KNOWN_DEVICES,
        device_class: int = PCI_KNOWN_DEVICE_CLASS,
        device_class_mask: int = PCI_KNOWN_DEVICE_CLASS_MASK,
        context=None,
    ):
        self.vendor_devices = tuple(vendor_devices)
        self.device_class = device_class
        self.device_class_mask = device_class_mask
        self._context = context

    def _get_context(self):
        if self._context is None:
            if not PYUDEV_AVAILABLE:
                raise PciAccessError("pyudev is not installed")
            try:
                self._context = pyudev.Context()
            except OSError as e:
                raise PciAccessError(str(e), cause=e) from e
        return self._context

    def class_matches(self, device_class: int) -> bool:
        mask = self.device_class_mask
        return (device_class & mask) == (self.device_class & mask)

    def enumerate(self) -> List[PciDevice]:
        """
        List the PCI devices of the configured class.

        Raises:
            PciAccessError: the bus could not be enumerated
        """
        context = self._get_context()
        devices = []
        try:
            for udev_device in context.list_devices(subsystem=self.SUBSYSTEM):
                device = self._parse_device(udev_device)
                if device and self.class_matches(device.device_class):
                    devices.append(device)
        except OSError as e:
            raise PciAccessError(str(e), cause=e) from e
        return devices

    def _parse_device(self, udev_device) -> Optional[PciDevice]:
        """Read the ids of one udev device; None if they are missing."""
        try:
            attributes = udev_device.attributes
            return PciDevice(
                pci_address=udev_device.sys_name,
                vendor_id=int(attributes.asstring("vendor"), 16),
                device_id=int(attributes.asstring("device"), 16),
                device_class=int(attributes.asstring("class"), 16),
            )
        except (KeyError, ValueError) as e:
            logger.debug(f"Skipping PCI device {getattr(udev_device, 'sys_name', '?')}: {e}")
            return None

    def lookup(self, vendor_id: int, device_id: int) -> List[str]:
        """Feature names the table lists for a vendor/device pair."""
        return [
            feature.feature_name
            for vendor in self.vendor_devices
            if vendor.vendor_id == vendor_id
            for feature in vendor.device_features
            if feature.device_id == device_id
        ]

    def match(self) -> Optional[str]:
        """
        Comma-joined features of the known devices present.

        Each feature name appears once. A name is skipped if it already
        occurs anywhere in the accumulated list, so a name that is a
        substring of an earlier one is also skipped.

        Raises:
            PciAccessError: the bus could not be enumerated
        """
        feature_list = ""
        for device in self.enumerate():
            for name in self.lookup(device.vendor_id, device.device_id):
                if name not in feature_list:
                    feature_list = f"{feature_list},{name}" if feature_list else name
                    logger.debug(f"PCI device {device.pci_address} -> {name}")
                    break
        return feature_list or None

    def summary(self) -> str:
        """The vendor/device table, one line per entry."""
        lines = []
        for vendor in self.vendor_devices:
            lines.append(f"0x{vendor.vendor_id:04X}")
            for feature in vendor.device_features:
                lines.append(
                    f"0x{vendor.vendor_id:04X} 0x{feature.device_id:04X} {feature.feature_name}"
                )
        return "\n".join(lines)
