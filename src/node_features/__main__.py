#!/usr/bin/env python3
"""Node Features - Module entry point."""
from node_features.cli import main

if __name__ == "__main__":
    main()
