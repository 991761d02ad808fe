from __future__ import annotations

import asyncio
import json
import os
import signal

import click
from pydantic import ValidationError

from querybot.config import BotConfig
from querybot.errors import QueryBotError
from querybot.logging import configure_logging, get_logger
from querybot.monitor import Monitor
from querybot.settings import Settings

logger = get_logger(__name__)

FORCED_EXIT_CODE = 137


class InterruptHandler:
    """First interrupt requests a graceful stop, the second exits at once."""

    def __init__(self, cancel: asyncio.Event) -> None:
        self.cancel = cancel

    def __call__(self) -> None:
        if self.cancel.is_set():
            logger.warning("interrupt_again_force_exit")
            os._exit(FORCED_EXIT_CODE)
        logger.info("interrupt_received_stopping")
        self.cancel.set()

    def install(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self)


async def run_bot(config: BotConfig, host: str | None, port: int | None, cancel: asyncio.Event) -> None:
    monitor = await Monitor.open(config, host, port)
    try:
        await monitor.run(cancel)
    finally:
        await monitor.close()


def _load(path: str) -> BotConfig:
    try:
        return BotConfig.from_yaml(path)
    except (OSError, ValidationError) as e:
        raise click.ClickException(f"Read configure file error: {e}") from e


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def cli() -> None:
    """querybot command line interface."""


@cli.command("run")
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--server", "host", default=None, help="Client query host (default from config).")
@click.option("--port", type=int, default=None, help="Client query port (default from config).")
def run(config_path: str, host: str | None, port: int | None) -> None:
    """Keep the identity online and steer playback until interrupted."""
    settings = Settings()
    configure_logging(settings)
    config = _load(config_path)

    async def _run() -> None:
        cancel = asyncio.Event()
        InterruptHandler(cancel).install(asyncio.get_running_loop())
        await run_bot(config, host or settings.query_host, port or settings.query_port, cancel)

    try:
        asyncio.run(_run())
    except (QueryBotError, TimeoutError) as e:
        logger.error("run_failed", error=str(e), error_type=type(e).__name__)
        raise click.ClickException(str(e)) from e


@cli.command("check-config")
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
def check_config(config_path: str) -> None:
    """Validate a config file and print it with secrets masked."""
    configure_logging(Settings())
    config = _load(config_path)
    click.echo(json.dumps(config.redacted(), indent=2))


def main() -> None:
    cli.main()


if __name__ == "__main__":
    main()
