#!/usr/bin/env python3
"""Check HYPERLIQUID_NETWORK and friends; pass --print-resolved to dump them as JSON."""

import sys
from pathlib import Path

src_dir = Path(__file__).parent / "src"
sys.path.insert(0, str(src_dir))

from hyperliquid_validator_exporter.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
