"""Command-line helpers for validator exporter tooling."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any

from .exceptions import ConfigError
from .runtime_settings import RuntimeSettings, get_runtime_settings


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate hyperliquid-validator-exporter configuration.",
    )
    parser.add_argument(
        "--network",
        dest="network",
        default=None,
        help="Network to validate (defaults to HYPERLIQUID_NETWORK or 'mainnet').",
    )
    parser.add_argument(
        "--print-resolved",
        action="store_true",
        help="Output the resolved runtime settings as JSON.",
    )
    return parser


def _serialize(value: Any) -> Any:
    if is_dataclass(value):
        return {key: _serialize(val) for key, val in asdict(value).items()}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [_serialize(item) for item in value]
    if isinstance(value, dict):
        return {key: _serialize(val) for key, val in value.items()}
    return value


def _render_runtime_settings(runtime: RuntimeSettings) -> str:
    monitor = _serialize(runtime.monitor)
    monitor["api_url"] = runtime.monitor.api_url

    payload = {
        "settings": _serialize(runtime.app),
        "monitor": monitor,
    }

    return json.dumps(payload, indent=2, sort_keys=True)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for the config validation script."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        runtime = get_runtime_settings(network=args.network)
    except ConfigError as exc:
        parser.error(str(exc))

    if args.print_resolved:
        print(_render_runtime_settings(runtime))
        return 0

    print(f"Configuration OK (network={runtime.monitor.network.value})")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
