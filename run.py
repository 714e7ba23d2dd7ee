#!/usr/bin/env python3
"""Development entry point: serve health on HEALTH_PORT and metrics on METRICS_PORT."""

import sys
from pathlib import Path

src_dir = Path(__file__).parent / "src"
sys.path.insert(0, str(src_dir))

from hyperliquid_validator_exporter.main import run  # noqa: E402

if __name__ == "__main__":
    run()
