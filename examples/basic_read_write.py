#!/usr/bin/env python3
"""Example: connect once, read the register window, decode a snapshot and set the device clock."""

import sys

from modbuster import EngineConfig, PollingEngine
from modbuster.errors import ModbusterError
from modbuster.render import format_register_table


def main() -> None:
    config = EngineConfig(host="192.168.1.10", port=502, unit_id=1)  # change to your device IP

    try:
        with PollingEngine(config) as engine:
            snapshot = engine.poll_once()
            print(format_register_table(engine.block, config.read_start, config.read_count))

            for name, value in snapshot.measurements:
                print(f"{name} = {value}")
            active = [name for name, on in snapshot.flags if on]
            print(f"active errors: {active or 'none'}")

            fields = engine.write_time()
            print(f"device clock set: {fields}")
    except ModbusterError as e:
        print(f"Modbus/connection error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
