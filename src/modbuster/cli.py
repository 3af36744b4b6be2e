#!/usr/bin/env python3
"""Command line interface for modbuster using Typer."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer
from typing_extensions import Annotated

from . import __version__  # type: ignore
from .block import RegisterBlock
from .config import EngineConfig
from .engine import PollingEngine
from .errors import ConfigError, ModbusterError, UnknownFieldError
from .fieldmap import FieldMap, get_default_fieldmap
from .render import (
    SNAPSHOT_FORMATS,
    csv_header,
    format_last_update,
    format_register_table,
    format_snapshot,
)
from .types import TelemetrySnapshot

app = typer.Typer(
    name="modbuster",
    help="Poll a Modbus TCP holding-register device, publish snapshots and keep its clock in sync.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Shared options and helpers
# ============================================================================

HostOption = Annotated[
    Optional[str],
    typer.Option("--host", "-h", help="Device hostname or IP address", envvar="MODBUSTER_HOST"),
]
PortOption = Annotated[
    int,
    typer.Option("--port", "-p", help="Modbus TCP port", envvar="MODBUSTER_PORT"),
]
UnitIdOption = Annotated[
    int,
    typer.Option("--unit-id", "-u", help="Modbus unit ID", envvar="MODBUSTER_UNIT_ID"),
]
TimeoutOption = Annotated[
    float,
    typer.Option("--timeout", "-t", help="Response timeout in seconds", envvar="MODBUSTER_TIMEOUT"),
]
RetriesOption = Annotated[
    int,
    typer.Option("--retries", "-r", help="pymodbus retries per request", envvar="MODBUSTER_RETRIES"),
]
MaxChunkOption = Annotated[
    int,
    typer.Option("--max-chunk", help="Maximum registers per request", envvar="MODBUSTER_MAX_CHUNK"),
]
FieldMapOption = Annotated[
    Optional[Path],
    typer.Option("--field-map", envvar="MODBUSTER_FIELD_MAP", help="JSON register layout (default: packaged layout)"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if not verbose else "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def load_field_map(field_map: Optional[Path]) -> FieldMap:
    if field_map is None:
        return get_default_fieldmap()
    if not field_map.is_file():
        raise ConfigError(f"Field map file not found: {field_map}")
    return FieldMap(path=field_map)


def build_config(
    host: Optional[str],
    port: int,
    unit_id: int,
    timeout: float,
    retries: int,
    field_map: Optional[Path] = None,
    **overrides: object,
) -> EngineConfig:
    """Build an EngineConfig from command options; --host is required."""
    if not host:
        typer.echo("Error: --host is required for this command", err=True)
        raise typer.Exit(2)
    base = EngineConfig(
        host=host,
        port=port,
        unit_id=unit_id,
        timeout=timeout,
        retries=retries,
        fields=load_field_map(field_map).fields,
    )
    return base.with_overrides(**overrides)


def parse_int(value: str) -> int:
    """Parse an unsigned 16-bit register value, decimal or 0x hex."""
    v = value.strip()
    num = int(v, 16) if v.lower().startswith("0x") else int(v)
    if not (0 <= num <= 65535):
        raise ValueError(f"Unsigned 16-bit integer out of range: {num}")
    return num


def fail(e: BaseException, verbose: bool) -> typer.Exit:
    """Report e on stderr and return the matching typer.Exit (2 usage, 3 link, 4 other)."""
    if isinstance(e, (ConfigError, UnknownFieldError, ValueError, IndexError)):
        typer.echo(f"Error: {e}", err=True)
        return typer.Exit(2)
    if isinstance(e, ModbusterError):
        typer.echo(f"Error: Connection/Modbus error: {e}", err=True)
        return typer.Exit(3)
    typer.echo(f"Error: Unexpected error: {e}", err=True)
    if verbose:
        import traceback
        traceback.print_exc()
    return typer.Exit(4)


# ============================================================================
# Commands
# ============================================================================

@app.command()
def ping(
    host: HostOption = None,
    port: PortOption = 502,
    unit_id: UnitIdOption = 1,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    verbose: VerboseOption = False,
    address: Annotated[int, typer.Option("--address", help="Register to read")] = 0,
) -> None:
    """
    Test connectivity by reading one holding register (default: address 0).
    """
    setup_logging(verbose)

    try:
        config = build_config(host, port, unit_id, timeout, retries)
        with PollingEngine(config) as engine:
            engine.ensure_connected()
            engine.session.read_registers(address, 1)
            typer.echo(f"OK: Connected to {config.endpoint}, register {address} = {engine.block[address]}")
    except typer.Exit:
        raise
    except Exception as e:
        raise fail(e, verbose)


@app.command()
def info(
    host: HostOption = None,
    port: PortOption = 502,
    unit_id: UnitIdOption = 1,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    field_map: FieldMapOption = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Show package version and register layout, and optionally test connectivity.

    Without --host: shows local metadata only.
    With --host: also tests connectivity.
    """
    setup_logging(verbose)

    try:
        fmap = load_field_map(field_map)
        start, count = fmap.span()
    except Exception as e:
        raise fail(e, verbose)

    info_data: dict[str, Any] = {
        "version": __version__,
        "field_map": fmap.profile,
        "fields": len(fmap),
        "field_window": {"start": start, "count": count},
    }

    if host:
        status: dict[str, Any] = {"host": host, "port": port, "unit_id": unit_id}
        try:
            config = build_config(host, port, unit_id, timeout, retries, field_map)
            with PollingEngine(config) as engine:
                engine.ensure_connected()
                engine.session.read_registers(config.read_start, 1)
                status["status"] = "connected"
        except ModbusterError:
            status["status"] = "failed"
        except Exception as e:
            status = {"status": "error", "error": str(e)}
        info_data["connectivity"] = status

    if json_output:
        typer.echo(json.dumps(info_data, indent=2))
    else:
        typer.echo(f"modbuster version: {info_data['version']}")
        typer.echo(f"Field map: {fmap.profile} ({len(fmap)} fields, registers {start}..{start + count - 1})")
        if "connectivity" in info_data:
            conn = info_data["connectivity"]
            if conn["status"] == "connected":
                typer.echo(f"Connectivity: OK ({host}:{port})")
            elif conn["status"] == "failed":
                typer.echo(f"Connectivity: FAILED ({host}:{port})")
            else:
                typer.echo(f"Connectivity: ERROR - {conn.get('error', 'unknown')}")


@app.command()
def read(
    start: Annotated[int, typer.Argument(help="First register address")],
    count: Annotated[int, typer.Argument(help="Number of registers")],
    host: HostOption = None,
    port: PortOption = 502,
    unit_id: UnitIdOption = 1,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    max_chunk: MaxChunkOption = 64,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
    cols: Annotated[int, typer.Option("--cols", help="Registers per row in table view")] = 8,
) -> None:
    """
    Read a register range (split into --max-chunk sized requests) and print it as a table.
    """
    setup_logging(verbose)

    try:
        config = build_config(host, port, unit_id, timeout, retries, max_chunk=max_chunk)
        with PollingEngine(config) as engine:
            engine.ensure_connected()
            engine.session.read_registers(start, count)
            values = engine.block.window(start, count)
        if json_output:
            typer.echo(json.dumps({"start": start, "count": count, "values": values}))
        else:
            typer.echo(format_last_update(datetime.now()))
            typer.echo("")
            typer.echo(format_register_table(engine.block, start, count, cols))
    except typer.Exit:
        raise
    except Exception as e:
        raise fail(e, verbose)


@app.command()
def write(
    start: Annotated[int, typer.Argument(help="First register address")],
    values: Annotated[list[str], typer.Argument(help="Register values (decimal or 0x hex)")],
    host: HostOption = None,
    port: PortOption = 502,
    unit_id: UnitIdOption = 1,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    max_chunk: MaxChunkOption = 64,
    verbose: VerboseOption = False,
) -> None:
    """
    Write one or more consecutive holding registers.

    A single value uses a single-register write; several values are written
    in --max-chunk sized requests.
    """
    setup_logging(verbose)

    try:
        parsed = [parse_int(v) for v in values]
    except ValueError as e:
        typer.echo(f"Error: Invalid value: {e}", err=True)
        raise typer.Exit(2)

    try:
        config = build_config(host, port, unit_id, timeout, retries, max_chunk=max_chunk)
        with PollingEngine(config) as engine:
            engine.ensure_connected()
            if len(parsed) == 1:
                engine.session.write_register(start, parsed[0])
            else:
                engine.session.write_registers(start, parsed)
        typer.echo(f"OK: Wrote {len(parsed)} register(s) at {start}")
    except typer.Exit:
        raise
    except Exception as e:
        raise fail(e, verbose)


@app.command()
def fields(
    field_map: FieldMapOption = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    List the register layout: field name, low-word address and decode kind.

    Does not require a connection.
    """
    setup_logging(verbose)

    try:
        fmap = load_field_map(field_map)
    except Exception as e:
        raise fail(e, verbose)

    if json_output:
        rows = [{"name": f.name, "address": f.address, "kind": f.kind.value} for f in fmap]
        typer.echo(json.dumps(rows, indent=2))
        return
    for f in fmap:
        typer.echo(f"{f.name:<24} {f.address:>5}  {f.kind.value}")


@app.command()
def snapshot(
    host: HostOption = None,
    port: PortOption = 502,
    unit_id: UnitIdOption = 1,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    max_chunk: MaxChunkOption = 64,
    field_map: FieldMapOption = None,
    verbose: VerboseOption = False,
    format: Annotated[str, typer.Option("--format", "-f", help="Output format: text, json, csv")] = "text",
) -> None:
    """
    Read the polled range once and print one telemetry snapshot.
    """
    setup_logging(verbose)

    if format not in SNAPSHOT_FORMATS:
        typer.echo(f"Error: Invalid format '{format}'. Must be text, json, or csv.", err=True)
        raise typer.Exit(2)

    try:
        config = build_config(host, port, unit_id, timeout, retries, field_map, max_chunk=max_chunk)
        with PollingEngine(config) as engine:
            snap = engine.poll_once()
        if format == "csv":
            typer.echo(csv_header(snap))
        typer.echo(format_snapshot(snap, format))
    except typer.Exit:
        raise
    except Exception as e:
        raise fail(e, verbose)


@app.command(name="sync-time")
def sync_time(
    host: HostOption = None,
    port: PortOption = 502,
    unit_id: UnitIdOption = 1,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    verbose: VerboseOption = False,
) -> None:
    """
    Write the host's local time to the device clock registers once.
    """
    setup_logging(verbose)

    try:
        config = build_config(host, port, unit_id, timeout, retries)
        with PollingEngine(config) as engine:
            engine.ensure_connected()
            tf = engine.write_time()
        typer.echo(
            "OK: Device clock set to {:04d}-{:02d}-{:02d} {:02d}:{:02d}:{:02d}".format(*tf.as_tuple())
        )
    except typer.Exit:
        raise
    except Exception as e:
        raise fail(e, verbose)


@app.command()
def run(
    host: HostOption = None,
    port: PortOption = 502,
    unit_id: UnitIdOption = 1,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    max_chunk: MaxChunkOption = 64,
    field_map: FieldMapOption = None,
    verbose: VerboseOption = False,
    read_start: Annotated[int, typer.Option("--read-start", help="First polled register")] = 200,
    read_count: Annotated[int, typer.Option("--read-count", help="Number of polled registers")] = 200,
    sample_ms: Annotated[int, typer.Option("--sample-ms", help="Sampling period (ms)")] = 500,
    deliver_ms: Annotated[int, typer.Option("--deliver-ms", help="Snapshot delivery period (ms), 0 disables")] = 30_000,
    time_ms: Annotated[int, typer.Option("--time-ms", help="Clock write-back period (ms), 0 disables")] = 10_000,
    reconnect_delay: Annotated[float, typer.Option("--reconnect-delay", help="Seconds between connect attempts")] = 2.0,
    reconnect_on_write_failure: Annotated[
        bool, typer.Option("--reconnect-on-write-failure", help="Treat failed clock writes as link loss")
    ] = False,
    format: Annotated[str, typer.Option("--format", "-f", help="Snapshot output format: text, json, csv")] = "text",
    view: Annotated[bool, typer.Option("--view", help="Redraw the register table after every sample")] = False,
) -> None:
    """
    Poll continuously: sample the register range, publish snapshots and write back the clock.

    Reconnects indefinitely after link loss. Press Ctrl+C to stop.
    """
    setup_logging(verbose)

    if format not in SNAPSHOT_FORMATS:
        typer.echo(f"Error: Invalid format '{format}'. Must be text, json, or csv.", err=True)
        raise typer.Exit(2)

    try:
        config = build_config(
            host,
            port,
            unit_id,
            timeout,
            retries,
            field_map,
            max_chunk=max_chunk,
            read_start=read_start,
            read_count=read_count,
            sample_period_ms=sample_ms,
            deliver_period_ms=deliver_ms,
            time_write_period_ms=time_ms,
            reconnect_delay_s=reconnect_delay,
            reconnect_on_write_failure=reconnect_on_write_failure,
        )
    except typer.Exit:
        raise
    except Exception as e:
        raise fail(e, verbose)

    header_done = False

    def show_snapshot(snap: TelemetrySnapshot) -> None:
        nonlocal header_done
        if format == "csv" and not header_done:
            typer.echo(csv_header(snap))
            header_done = True
        typer.echo(format_snapshot(snap, format))

    def show_block(block: RegisterBlock) -> None:
        typer.clear()
        typer.echo(format_last_update(datetime.now()))
        typer.echo("")
        typer.echo(format_register_table(block, config.read_start, config.read_count))

    try:
        engine = PollingEngine(
            config,
            on_sample=show_block if view else None,
            on_snapshot=show_snapshot,
        )
        engine.run()
    except KeyboardInterrupt:
        typer.echo("\nStopped by user", err=True)
        raise typer.Exit(0)
    except Exception as e:
        raise fail(e, verbose)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"modbuster {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """modbuster - resilient Modbus TCP register poller."""
    pass


if __name__ == "__main__":
    app()
