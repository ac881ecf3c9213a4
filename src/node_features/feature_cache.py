#!/usr/bin/env python3
"""
Node Features - Feature Cache

The node's CpuFeatures record is parsed once and reused until the host
reconfigures. The host may ask for node state from several threads, so
check -> parse -> render runs under one lock.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from common.decorators import handle_errors
from common.exceptions import CpuinfoError, PciAccessError
from common.guarded import GuardedCell

from .codec import FeatureStringCodec
from .cpuinfo import CpuFeatureExtractor, CpuFeatures
from .pci_matcher import PciDeviceMatcher

logger = logging.getLogger(__name__)


class FeatureCache:
    """Lazily parsed, lock-protected CpuFeatures for this node."""

    def __init__(
        self,
        cpuinfo_path: Union[str, Path] = CpuFeatureExtractor.CPUINFO_PATH,
        extractor: Optional[CpuFeatureExtractor] = None,
        codec: Optional[FeatureStringCodec] = None,
        pci_matcher: Optional[PciDeviceMatcher] = None,
    ):
        self.cpuinfo_path = Path(cpuinfo_path)
        self.extractor = extractor or CpuFeatureExtractor()
        self.codec = codec or FeatureStringCodec(pci_detection=pci_matcher is not None)
        self.pci_matcher = pci_matcher
        self._cell: GuardedCell[CpuFeatures] = GuardedCell()

    @property
    def is_populated(self) -> bool:
        return self._cell.is_set

    def _parse(self) -> Optional[CpuFeatures]:
        try:
            return self.extractor.extract_file(self.cpuinfo_path)
        except CpuinfoError as e:
            # Stay unpopulated; the next request tries again
            logger.warning(f"No cpuinfo features for this node: {e}")
            return None

    @handle_errors(PciAccessError, default=None, log_level=logging.WARNING,
                   message="PCI detection failed")
    def _pci_features(self) -> Optional[str]:
        if self.pci_matcher is None:
            return None
        return self.pci_matcher.match()

    def ensure_populated(self) -> Optional[CpuFeatures]:
        """Parse the cpuinfo file if needed; None if it could not be read."""
        with self._cell:
            return self._cell.get_or_create(self._parse)

    def render(self) -> Optional[str]:
        """Comma-joined owned features for this node, or None."""
        with self._cell:
            cif = self._cell.get_or_create(self._parse)
            if cif is None:
                return None
            return self.codec.render(cif, self._pci_features())

    def invalidate(self) -> None:
        """Forget the parsed record; the next request parses again."""
        if self._cell.clear() is not None:
            logger.debug("Cached cpuinfo features invalidated")
