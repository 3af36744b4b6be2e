#!/usr/bin/env python3
"""Example: run the polling engine and print one JSON line per delivered snapshot; Ctrl+C to stop."""

import sys

from modbuster import EngineConfig, PollingEngine
from modbuster.errors import ConfigError
from modbuster.render import format_snapshot


def main() -> None:
    try:
        config = EngineConfig(
            host="192.168.1.10",  # change to your device IP
            port=502,
            unit_id=1,
            sample_period_ms=500,
            deliver_period_ms=5_000,
            time_write_period_ms=10_000,
        )
    except ConfigError as e:
        print(f"Bad configuration: {e}", file=sys.stderr)
        sys.exit(1)

    engine = PollingEngine(config, on_snapshot=lambda snap: print(format_snapshot(snap, "json")))
    print(f"Polling {config.endpoint} (Ctrl+C to stop)...")
    try:
        engine.run()
    except KeyboardInterrupt:
        print("\nStopped.")


if __name__ == "__main__":
    main()
