"""
pollgauge entry point.

Usage:
    pollgauge                                   Run the bridge (defaults)
    pollgauge --fetch-url http://host/value     Run against another upstream
    pollgauge check                             One-shot fetch, print the value

Every option also reads an environment variable (FETCH_URL,
SCRAPE_INTERVAL, LISTEN_ADDRESS, ...), which is how the container image
is configured.
"""

from __future__ import annotations

import logging
import signal
import sys
import threading

import click

from pollgauge import __version__
from pollgauge import config as cfg
from pollgauge.app import Bridge
from pollgauge.collector.fetcher import Fetcher
from pollgauge.config import Config
from pollgauge.errors import ConfigError, ServerStartupError
from pollgauge.poller import PollLoop
from pollgauge.sink import MetricsSink


log = logging.getLogger("pollgauge")


class DurationParamType(click.ParamType):
    name = "duration"

    def convert(self, value, param, ctx):
        if isinstance(value, (int, float)):
            return float(value)
        try:
            return cfg.parse_duration(value)
        except ConfigError as e:
            self.fail(str(e), param, ctx)


DURATION = DurationParamType()


def _setup_logging(verbose: bool):
    level = logging.DEBUG if verbose else logging.INFO
    if sys.stderr.isatty():
        from rich.logging import RichHandler

        logging.basicConfig(
            level=level,
            format="[%(name)s] %(message)s",
            datefmt="%H:%M:%S",
            handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        )
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        )
    # httpx logs every request at INFO; one line per cycle is ours to write.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="pollgauge")
@click.option("--fetch-url", envvar="FETCH_URL", default=cfg.DEFAULT_FETCH_URL, show_default=True,
              help="Upstream URL returning a single integer")
@click.option("--scrape-interval", envvar="SCRAPE_INTERVAL", type=DURATION,
              default=cfg.DEFAULT_SCRAPE_INTERVAL, show_default=True,
              help="Time between polls, e.g. 300s, 5m, 1h30m")
@click.option("--listen-address", envvar="LISTEN_ADDRESS", default=cfg.DEFAULT_LISTEN_ADDRESS,
              show_default=True, help="host:port for the metrics endpoint")
@click.option("--metrics-path", envvar="METRICS_PATH", default=cfg.DEFAULT_METRICS_PATH,
              show_default=True, help="Path of the Prometheus scrape endpoint")
@click.option("--fetch-timeout", envvar="FETCH_TIMEOUT", type=DURATION,
              default=cfg.DEFAULT_FETCH_TIMEOUT, show_default=True,
              help="Upstream request timeout")
@click.option("--shutdown-grace", envvar="SHUTDOWN_GRACE", type=DURATION,
              default=cfg.DEFAULT_SHUTDOWN_GRACE, show_default=True,
              help="How long to drain scrape requests on shutdown")
@click.option("--namespace", envvar="METRIC_NAMESPACE", default=cfg.DEFAULT_NAMESPACE,
              show_default=True, help="Prefix for the exported metric names")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx, fetch_url: str, scrape_interval: float, listen_address: str, metrics_path: str,
        fetch_timeout: float, shutdown_grace: float, namespace: str, verbose: bool):
    """pollgauge - republish a polled upstream value as a Prometheus gauge."""
    _setup_logging(verbose)

    config = Config(
        fetch_url=fetch_url,
        scrape_interval=scrape_interval,
        listen_address=listen_address,
        metrics_path=metrics_path,
        fetch_timeout=fetch_timeout,
        shutdown_grace=shutdown_grace,
        namespace=namespace,
    )
    try:
        config.validate()
    except ConfigError as e:
        raise click.UsageError(str(e), ctx=ctx)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config

    if ctx.invoked_subcommand is None:
        serve(config)


def serve(config: Config):
    """Run the bridge until SIGINT or SIGTERM."""
    stop = threading.Event()

    def _on_signal(signum, frame):
        log.info("Received %s", signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    bridge = Bridge(config)
    try:
        bridge.start()
    except ServerStartupError as e:
        log.error("Server error: %s", e)
        raise SystemExit(1)

    try:
        stop.wait()
    finally:
        bridge.request_shutdown()


@cli.command()
@click.pass_context
def check(ctx):
    """Run a single poll cycle against the upstream and print the result."""
    from rich.console import Console

    config: Config = ctx.obj["config"]
    console = Console()

    fetcher = Fetcher(timeout_seconds=config.fetch_timeout)
    try:
        loop = PollLoop(config, fetcher, MetricsSink(namespace=config.namespace))
        result = loop.run_cycle()
    finally:
        fetcher.close()

    if result.ok:
        console.print(f"[bold green]{result.value}[/bold green]  "
                      f"[dim]({result.duration * 1000:.0f} ms from {config.fetch_url})[/dim]")
        return

    console.print(f"[red]FAILED[/red]  stage={result.stage.value}")
    console.print(f"         [dim]{result.cause}[/dim]")
    raise SystemExit(1)


if __name__ == "__main__":
    cli()
