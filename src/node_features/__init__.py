"""Node Features cpuinfo Module.

This module derives scheduler node features from a node's hardware:
- CPU vendor, compact model name and cache size from /proc/cpuinfo
- SSE/AVX instruction set extensions
- Known PCI devices (GPUs), when udev is available

and merges them into the node's feature lists without disturbing
features owned by anyone else.
"""

from .line_reader import StreamLineReader
from .isa_flags import IsaToken, IsaFlagSet
from .cache_size import parse_cache_size
from .model_name import normalize_model_name
from .cpuinfo import (
    CpuFeatures, CpuFeatureExtractor, DecoderKind, FieldParser, FieldParserRegistry,
)
from .codec import FeatureStringCodec
from .reconciler import FeatureSetReconciler
from .pci_matcher import PciDeviceMatcher, PciVendorDevices, PciDeviceFeature
from .feature_cache import FeatureCache
from .config import PluginConfig, load_config
from .plugin import CpuinfoNodeFeatures

__all__ = [
    # Line reading
    "StreamLineReader",
    # Parsing
    "IsaToken",
    "IsaFlagSet",
    "parse_cache_size",
    "normalize_model_name",
    "CpuFeatures",
    "CpuFeatureExtractor",
    "DecoderKind",
    "FieldParser",
    "FieldParserRegistry",
    # Feature strings
    "FeatureStringCodec",
    "FeatureSetReconciler",
    # PCI
    "PciDeviceMatcher",
    "PciVendorDevices",
    "PciDeviceFeature",
    # Host integration
    "FeatureCache",
    "PluginConfig",
    "load_config",
    "CpuinfoNodeFeatures",
]

__version__ = "0.1.0"
