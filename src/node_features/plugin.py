#!/usr/bin/env python3
"""
Node Features - Host Integration

Entry points the scheduler's node-features host calls. The host owns the
lifecycle: init() when the plugin loads, reconfig() when configuration is
reloaded, fini() when it unloads.

Only node_state, job_xlate, node_xlate, node_xlate2 and
changeable_feature do real work; the rest answer the host with fixed
values because this plugin never reboots or reconfigures nodes.
"""

import logging
from typing import Iterable, Optional, Tuple

from common.capabilities import PCI_DETECTION, capability_available
from common.decorators import handle_errors

from .codec import FEATURE_DELIMITER, FeatureStringCodec
from .config import PluginConfig
from .cpuinfo import CpuFeatureExtractor
from .feature_cache import FeatureCache
from .pci_matcher import PciDeviceMatcher
from .reconciler import FeatureSetReconciler

logger = logging.getLogger(__name__)

PLUGIN_NAME = "node_features cpuinfo plugin"
PLUGIN_TYPE = "node_features/cpuinfo"


def _append(features: Optional[str], extra: str) -> str:
    return f"{features}{FEATURE_DELIMITER}{extra}" if features else extra


class CpuinfoNodeFeatures:
    """cpuinfo node features plugin."""

    name = PLUGIN_NAME
    plugin_type = PLUGIN_TYPE

    def __init__(self, config: Optional[PluginConfig] = None, pci_context=None):
        self.config = config or PluginConfig()
        self.pci_detection = self.config.pci_detection and (
            pci_context is not None or capability_available(PCI_DETECTION)
        )
        self.codec = FeatureStringCodec(pci_detection=self.pci_detection)
        self.reconciler = FeatureSetReconciler(self.codec)
        self._pci_context = pci_context
        self.cache: Optional[FeatureCache] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init(self) -> None:
        """Plugin load."""
        logger.debug("init")
        self.cache = self._build_cache()

    def fini(self) -> None:
        """Plugin unload; drops the cached record."""
        logger.debug("fini")
        if self.cache is not None:
            self.cache.invalidate()
            self.cache = None

    def reconfig(self) -> None:
        """Configuration reload; the next node_state parses again."""
        logger.debug("reconfig")
        if self.cache is not None:
            self.cache.invalidate()

    def _build_cache(self) -> FeatureCache:
        pci_matcher = None
        if self.pci_detection:
            pci_matcher = PciDeviceMatcher(
                self.config.pci_vendor_devices,
                self.config.pci_device_class,
                self.config.pci_device_class_mask,
                context=self._pci_context,
            )
        extractor = CpuFeatureExtractor(
            chunk_size=self.config.chunk_size,
            max_line_capacity=self.config.max_line_capacity,
        )
        return FeatureCache(
            self.config.cpuinfo_path,
            extractor=extractor,
            codec=self.codec,
            pci_matcher=pci_matcher,
        )

    # ------------------------------------------------------------------
    # Node state
    # ------------------------------------------------------------------

    @handle_errors(default=None, message="node_state failed")
    def _owned_features(self) -> Optional[str]:
        if self.cache is None:
            logger.warning("node_state called before init")
            return None
        return self.cache.render()

    def node_state(
        self,
        avail_modes: Optional[str],
        current_mode: Optional[str],
    ) -> Tuple[Optional[str], Optional[str]]:
        """
        Add this node's features to its available and active lists.

        Returns:
            The (available, active) lists, unchanged if this node has no
            features to contribute
        """
        logger.debug(f"node_state: avail_modes = {avail_modes}")
        logger.debug(f"node_state: current_mode = {current_mode}")

        features = self._owned_features()
        if not features:
            return avail_modes, current_mode
        return _append(avail_modes, features), _append(current_mode, features)

    # ------------------------------------------------------------------
    # Feature translation
    # ------------------------------------------------------------------

    def job_xlate(self, job_features: Optional[str]) -> Optional[str]:
        """Features of a job request that this plugin handles."""
        return self.reconciler.job_xlate(job_features)

    def node_xlate(
        self,
        new_features: Optional[str],
        orig_features: Optional[str],
        avail_features: Optional[str] = None,
    ) -> Optional[str]:
        """Replace our old features in orig_features with new_features."""
        return self.reconciler.xlate(new_features, orig_features, avail_features)

    def node_xlate2(self, new_features: Optional[str]) -> Optional[str]:
        """Reorder a finished feature list."""
        return self.reconciler.reorder(new_features)

    def changeable_feature(self, feature: Optional[str]) -> bool:
        """Is feature one of ours?"""
        logger.debug(f"changeable_feature: feature = {feature}")
        return self.codec.is_owned(feature)

    # ------------------------------------------------------------------
    # Host hooks with fixed answers
    # ------------------------------------------------------------------

    def get_node(self, node_list: Optional[str] = None) -> None:
        logger.debug(f"get_node: node_list = {node_list}")

    def job_valid(self, job_features: Optional[str]) -> bool:
        """Constraint syntax is the host's business; always accept."""
        logger.debug("job_valid")
        return True

    def node_set(self, active_features: Optional[str]) -> None:
        logger.debug(f"node_set: active_features = {active_features}")

    def node_power(self) -> bool:
        """Booting nodes never needs power saving mode."""
        return False

    def node_update(self, active_features: Optional[str], nodes: Iterable[str] = ()) -> None:
        logger.debug(f"node_update: active_features = {active_features}")

    def node_update_valid(self, node_names: Optional[str], features: Optional[str],
                          features_act: Optional[str]) -> bool:
        """Hardware features cannot be changed by a node update."""
        logger.debug(
            f"node_update_valid: node_names={node_names}, features={features}, "
            f"features_act={features_act}"
        )
        return False

    def step_config(self, mem_sort: bool = False, numa_nodes: Iterable[int] = ()) -> None:
        pass

    def user_update(self, uid: int) -> bool:
        """No user may reconfigure hardware features."""
        logger.debug(f"user_update: uid = {uid}")
        return False

    def boot_time(self) -> int:
        """Estimated reboot time in seconds."""
        return 0

    def reboot_weight(self) -> int:
        return 0

    def overlap(self, active_nodes: Iterable[bool]) -> int:
        """Number of nodes set in active_nodes."""
        return sum(1 for active in active_nodes if active)
