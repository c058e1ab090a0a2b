"""CLI for keyed breaker.

Provides a command-line exerciser that drives a breaker registry from
``<key> <mode>`` pairs read on standard input.
"""

from __future__ import annotations

import dataclasses
import logging
import sys

import click

from .breaker_config import BreakerConfig
from .circuit_breaker import BreakerRegistry
from .config_file import resolve_config_for_cli
from .exerciser import exercise, iter_pairs, parse_mode

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def cli(verbose: bool) -> None:
    """Keyed Breaker - per-key circuit breaking for fallible operations."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command(name="exercise")
@click.option(
    "--config",
    "config_path",
    type=click.Path(),
    envvar="KEYED_BREAKER_CONFIG",
    help="Path to breaker.toml (default: nearest breaker.toml or built-in defaults)",
)
@click.option("--max-retries", type=int, default=None, help="Override failures tolerated before tripping")
@click.option("--cool-down", type=float, default=None, help="Override cool-down in seconds")
def exercise_command(
    config_path: str | None,
    max_retries: int | None,
    cool_down: float | None,
) -> None:
    """Drive a breaker registry from <key> <mode> pairs on stdin.

    Modes: y = operation fails, n = operation succeeds,
    anything else = operation fails with a fallback returning -1.
    """
    try:
        config = _resolve_config(config_path, max_retries, cool_down)
    except (FileNotFoundError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    registry = BreakerRegistry(config)
    click.echo("Testing, format: <key> <mode: y/n/f>")

    stdin = click.get_text_stream("stdin")
    for key, token in iter_pairs(stdin):
        click.echo(exercise(registry, key, parse_mode(token)))

    _print_summary(registry)


def _resolve_config(
    config_path: str | None,
    max_retries: int | None,
    cool_down: float | None,
) -> BreakerConfig:
    """Load config and apply command-line overrides."""
    config = resolve_config_for_cli(config_path)

    overrides: dict[str, int | float] = {}
    if max_retries is not None:
        if max_retries < 0:
            msg = f"--max-retries must be >= 0, got {max_retries}"
            raise ValueError(msg)
        overrides["max_retries"] = max_retries
    if cool_down is not None:
        if cool_down < 0:
            msg = f"--cool-down must be >= 0, got {cool_down}"
            raise ValueError(msg)
        overrides["cool_down_seconds"] = cool_down

    if overrides:
        config = dataclasses.replace(config, **overrides)
    logger.debug("Exercising with %s", config)
    return config


def _print_summary(registry: BreakerRegistry) -> None:
    """Print the final phase of every exercised key."""
    if not len(registry):
        return

    click.echo("\n" + "=" * 40)
    click.echo("Breaker Summary")
    click.echo("=" * 40)
    for key in registry.keys():
        snap = registry.get_state(key).snapshot()
        state_icon = {
            "normal": "[OK]",
            "blocked": "[X]",
            "probing": "[~]",
        }.get(snap.phase.value, "?")
        click.echo(f"  {state_icon} {key}: {snap.phase.value} (failures={snap.failure_count})")


def main() -> None:
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
