"""
Klipper exporter entry point.

Usage:
    klipper-exporter                                   Serve /probe on :9101
    klipper-exporter --web.listen-address :9200        Serve on another port
    klipper-exporter probe --target printer.local:7125 One-shot table of metrics
"""

from __future__ import annotations

import logging

import click

from klipper_exporter import __version__
from klipper_exporter.metrics import DEFAULT_MODULES, MODULES
from klipper_exporter.server import DEFAULT_LISTEN_ADDRESS, resolve_api_key, serve


log = logging.getLogger("klipper_exporter")


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="klipper-exporter")
@click.option("--web.listen-address", "listen_address", default=DEFAULT_LISTEN_ADDRESS,
              help="Address on which to expose metrics and web interface.")
@click.option("--moonraker.apikey", "api_key", default="",
              help="API Key to authenticate with the Klipper APIs.")
@click.option("--timeout", default=5.0, help="Upstream request timeout in seconds")
@click.option("--debug", is_flag=True, default=False, help="Enable debug logging.")
@click.option("--verbose", is_flag=True, default=False,
              help="Enable verbose logging, including HTTP client internals.")
@click.pass_context
def cli(ctx, listen_address: str, api_key: str, timeout: float, debug: bool, verbose: bool):
    """Prometheus exporter for Klipper, via the Moonraker API."""
    logging.basicConfig(
        level=logging.DEBUG if (debug or verbose) else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    # httpx logs every request at INFO; only show it when asked to
    http_level = logging.DEBUG if verbose else logging.WARNING
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(http_level)

    ctx.ensure_object(dict)
    ctx.obj["api_key"] = api_key
    ctx.obj["timeout"] = timeout

    if ctx.invoked_subcommand is None:
        serve(listen_address=listen_address, api_key=api_key, timeout_seconds=timeout)


@cli.command()
@click.option("--target", required=True, help="Moonraker host:port, e.g. printer.local:7125")
@click.option("--module", "modules", multiple=True, type=click.Choice(MODULES),
              help="Module to collect (repeatable). Defaults to "
                   + ", ".join(DEFAULT_MODULES) + ".")
@click.pass_context
def probe(ctx, target: str, modules):
    """Scrape a printer once and print the metrics."""
    from klipper_exporter.collector.snapshot import SnapshotCollector
    from klipper_exporter.dashboard.terminal import print_snapshot

    collector = SnapshotCollector(timeout_seconds=ctx.obj["timeout"])
    api_key = resolve_api_key(None, ctx.obj["api_key"])
    snapshot = collector.snapshot(target, modules or DEFAULT_MODULES, api_key)
    print_snapshot(snapshot)

    if snapshot.failed_modules:
        raise SystemExit(1)


if __name__ == "__main__":
    cli()
