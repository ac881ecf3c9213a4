#!/usr/bin/env python3
"""
Node Features - Feature String Codec

Features published by this engine have the form TYPE::VALUE:

    VENDOR  CPU vendor string
    MODEL   compact CPU model name
    CACHE   kilobytes of cache reported (suffixed with KB)
    ISA     ISA extensions, one feature per extension
    PCI     known PCI devices (only with PCI detection)

A feature string belongs to this engine exactly when it starts with one
of these prefixes.
"""

from typing import List, Optional, Tuple

from .cpuinfo import CpuFeatures

FEATURE_DELIMITER = ","

VENDOR_PREFIX = "VENDOR::"
MODEL_PREFIX = "MODEL::"
CACHE_PREFIX = "CACHE::"
ISA_PREFIX = "ISA::"
PCI_PREFIX = "PCI::"

CPU_PREFIXES = (VENDOR_PREFIX, MODEL_PREFIX, CACHE_PREFIX, ISA_PREFIX)


class FeatureStringCodec:
    """Renders CpuFeatures records and recognizes owned feature strings."""

    def __init__(self, pci_detection: bool = False):
        self.pci_detection = pci_detection

    @property
    def prefixes(self) -> Tuple[str, ...]:
        if self.pci_detection:
            return CPU_PREFIXES + (PCI_PREFIX,)
        return CPU_PREFIXES

    def is_owned(self, feature: Optional[str]) -> bool:
        """True if feature starts with one of our TYPE:: prefixes."""
        if not feature:
            return False
        return feature.startswith(self.prefixes)

    def features(
        self,
        cif: CpuFeatures,
        pci_features: Optional[str] = None,
    ) -> List[str]:
        """The feature strings for cif, in publishing order."""
        out: List[str] = []
        if pci_features and self.pci_detection:
            out.extend(split_features(pci_features))

        if cif.vendor_id:
            out.append(f"{VENDOR_PREFIX}{cif.vendor_id}")
        if cif.model_name:
            out.append(f"{MODEL_PREFIX}{cif.model_name}")
            # Gated on the model name rather than the cache size, so a
            # record with a model but no cache line publishes CACHE::0KB.
            out.append(f"{CACHE_PREFIX}{cif.cache_kb}KB")
        out.extend(f"{ISA_PREFIX}{token}" for token in cif.isa_flags.tokens())
        return out

    def render(
        self,
        cif: CpuFeatures,
        pci_features: Optional[str] = None,
    ) -> Optional[str]:
        """Comma-joined feature list, or None if there is nothing to publish."""
        features = self.features(cif, pci_features)
        if not features:
            return None
        return FEATURE_DELIMITER.join(features)


def split_features(features: Optional[str], delimiter: str = FEATURE_DELIMITER) -> List[str]:
    """Split a feature list, dropping empty tokens. None splits to []."""
    if not features:
        return []
    return [tok for tok in features.split(delimiter) if tok]
