#!/usr/bin/env python3
"""
Node Features - Command Line Interface

Parses one or more cpuinfo files and prints the features each would
publish, one line per file:

    /proc/cpuinfo:    VENDOR::GenuineIntel,MODEL::E5-2695_v4,CACHE::46080KB,ISA::sse,...
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from common.capabilities import PCI_DETECTION, capability_available
from common.exceptions import ConfigError, CpuinfoError, PciAccessError
from common.logging_config import LogContext, setup_logging

from .codec import FeatureStringCodec
from .config import PluginConfig, load_config
from .cpuinfo import CpuFeatureExtractor
from .pci_matcher import PciDeviceMatcher

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="node-features-cpuinfo",
        description="Show the node features derived from cpuinfo files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  node-features-cpuinfo                      # Parse /proc/cpuinfo
  node-features-cpuinfo node1.txt node2.txt  # Parse saved cpuinfo files
  node-features-cpuinfo --pci-table          # Show known PCI devices
        """
    )
    parser.add_argument("files", nargs="*", metavar="FILE",
                        help="cpuinfo files to parse (default: configured cpuinfo path)")
    parser.add_argument("-c", "--config", type=Path,
                        help="JSON configuration file")
    pci = parser.add_mutually_exclusive_group()
    pci.add_argument("--pci", dest="pci", action="store_true", default=None,
                     help="Include PCI device features")
    pci.add_argument("--no-pci", dest="pci", action="store_false",
                     help="Skip PCI device features")
    parser.add_argument("--pci-table", action="store_true",
                        help="Print the known PCI vendor/device table and exit")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Debug logging")
    parser.add_argument("--log-file", type=Path,
                        help="Also log to this file")
    parser.add_argument("--json-logs", action="store_true",
                        help="Write the log file as JSON lines")
    return parser


def pci_features(config: PluginConfig) -> Optional[str]:
    """PCI features of this machine, or None if detection fails."""
    matcher = PciDeviceMatcher(
        config.pci_vendor_devices,
        config.pci_device_class,
        config.pci_device_class_mask,
    )
    try:
        return matcher.match()
    except PciAccessError as e:
        logger.warning(f"PCI detection failed: {e}")
        return None


def cmd_parse(files: List[str], config: PluginConfig, use_pci: bool) -> int:
    """Print the features of each file; returns the exit status."""
    codec = FeatureStringCodec(pci_detection=use_pci)
    extractor = CpuFeatureExtractor(
        chunk_size=config.chunk_size,
        max_line_capacity=config.max_line_capacity,
    )
    pci = pci_features(config) if use_pci else None

    status = 0
    for path in files:
        rendered = None
        with LogContext(path=path):
            try:
                cif = extractor.extract_file(path)
                rendered = codec.render(cif, pci)
            except CpuinfoError as e:
                logger.error(str(e))
                status = 1
        print(f"{path}:    {rendered or ''}")
    return status


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        log_file=args.log_file,
        json_logs=args.json_logs,
    )

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(2)

    if args.pci_table:
        print(PciDeviceMatcher(config.pci_vendor_devices).summary())
        sys.exit(0)

    use_pci = config.pci_detection if args.pci is None else args.pci
    if use_pci and not capability_available(PCI_DETECTION):
        logger.warning("PCI detection requested but pyudev is not available")
        use_pci = False

    files = args.files or [config.cpuinfo_path]
    sys.exit(cmd_parse(files, config, use_pci))


if __name__ == "__main__":
    main()
