"""CLI entry point — inspect emitter settings and simulate an emit."""

from __future__ import annotations

import logging
import threading
import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from async_emitter.core.config import ConfigManager, EmitterConfig
from async_emitter.core.emitter import Emitter
from async_emitter.core.exceptions import EmitterError


def _make_listener(delay_ms: int, *, sync: bool) -> Callable[[Callable[[], None]], None]:
    """Build a listener that signals after *delay_ms*, or at once if *sync*."""

    def listener(cb: Callable[[], None]) -> None:
        if sync:
            cb()
            return
        timer = threading.Timer(delay_ms / 1000, cb)
        timer.daemon = True
        timer.start()

    return listener


def _parse_overrides(
    _ctx: click.Context,
    _param: click.Parameter,
    values: tuple[str, ...],
) -> list[tuple[str, Any]]:
    """Parse ``KEY=VALUE`` pairs, reading each value as a TOML literal.

    Args:
        _ctx: The click context (unused).
        _param: The option being parsed (unused).
        values: Raw ``--set`` arguments.

    Returns:
        ``(key, value)`` pairs in command-line order.

    Raises:
        click.BadParameter: If a pair is malformed or its value is not TOML.
    """
    overrides: list[tuple[str, Any]] = []
    for raw in values:
        key, sep, literal = raw.partition("=")
        key = key.strip()
        if not sep or not key:
            msg = f"expected KEY=VALUE, got '{raw}'"
            raise click.BadParameter(msg)
        try:
            value = tomllib.loads(f"value = {literal.strip()}")["value"]
        except tomllib.TOMLDecodeError as exc:
            msg = f"invalid value for '{key}': {literal!r}"
            raise click.BadParameter(msg) from exc
        overrides.append((key, value))
    return overrides


@click.group()
@click.version_option(package_name="async-emitter")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Log emitter activity to stderr.")
def cli(verbose: bool) -> None:
    """Async Emitter — event emitter diagnostics."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@cli.command(name="config")
@click.option(
    "-c",
    "--config-dir",
    type=click.Path(file_okay=False, resolve_path=True),
    default=None,
    help="Configuration directory (default: ~/.config/async-emitter).",
)
@click.option("-e", "--emitter", "name", default=None, help="Apply overrides for this emitter name.")
@click.option(
    "-s",
    "--set",
    "overrides",
    multiple=True,
    callback=_parse_overrides,
    help="Override a global option, e.g. --set strict=true.",
)
def config_cmd(config_dir: str | None, name: str | None, overrides: list[tuple[str, Any]]) -> None:
    """Print the resolved strict/debug settings."""
    manager = ConfigManager(config_dir=Path(config_dir) if config_dir else None)
    try:
        manager.load()
        for key, value in overrides:
            manager.set_global(key, value)
        config = manager.emitter_config(name)
    except EmitterError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(f"strict = {str(config.strict).lower()}")
    click.echo(f"debug = {str(config.debug).lower()}")
    click.echo(f"debug_timeout = {config.debug_timeout}")


@cli.command(name="simulate")
@click.option("-n", "--listeners", "count", default=3, show_default=True, type=click.IntRange(min=0))
@click.option("-d", "--delay", default=10, show_default=True, type=click.IntRange(min=0), help="Delay in ms.")
@click.option("--sync", is_flag=True, default=False, help="Signal completion inside the listener call.")
@click.option("--strict", is_flag=True, default=False, help="Raise on protocol anomalies.")
@click.option("--debug", is_flag=True, default=False, help="Report emits that do not complete in time.")
@click.option("--event", default="simulated", show_default=True, help="Event name to fire.")
@click.option("--timeout", default=5.0, show_default=True, type=float, help="Seconds to wait for completion.")
def simulate_cmd(
    count: int,
    delay: int,
    sync: bool,
    strict: bool,
    debug: bool,
    event: str,
    timeout: float,
) -> None:
    """Fire an event at listeners that complete after a delay."""
    emitter = Emitter(config=EmitterConfig(strict=strict, debug=debug))
    for _ in range(count):
        emitter.on(event, _make_listener(delay, sync=sync))

    done = threading.Event()
    try:
        emitter.emit(event, {}, done.set)
    except EmitterError as exc:
        raise click.ClickException(str(exc)) from exc

    if not done.wait(timeout):
        msg = f"'{event}' did not complete within {timeout}s"
        raise click.ClickException(msg)
    click.echo(f"Completed '{event}' after {count} listener(s)")
