"""Run a consumer application until it is stopped.

This module provides a CLI that imports a host application (or a factory that
builds one from the environment settings), connects it to the broker and keeps
consuming until SIGINT/SIGTERM arrives or the broker connection closes.
"""

import asyncio
import importlib
import logging
import os
import signal
import sys
from typing import Any, Iterable

import click
import dotenv

from config import get_settings
from msg_stack.application import EVENT_CONNECTION_CLOSED, Application
from msg_stack.errors import ConfigurationError, LifecycleError, UsageError

logger = logging.getLogger(__name__)


def load_app(target: str, config: dict[str, Any], app_path: Iterable[str] = ()) -> Application:
    """Import target ("module:attribute") and return the Application it names.

    Args:
        target: Import path of an Application instance or a factory.
        config: Config passed to a factory; ignored for an Application instance.
        app_path: Directories to add to sys.path before importing.
    Returns:
        The application to run.

    Raises:
        click.ClickException: If the target cannot be imported or is not an
            application or application factory.
    """
    for path in app_path:
        if os.path.exists(path) and path not in sys.path:
            sys.path.append(path)
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise click.ClickException(f"Invalid app target {target!r}, expected module:attribute")
    try:
        module = importlib.import_module(module_name)
    except ImportError as err:
        raise click.ClickException(f"Cannot import {module_name}: {err}") from err
    app = getattr(module, attribute, None)
    if app is None:
        raise click.ClickException(f"Module {module_name} has no attribute {attribute}")
    if isinstance(app, Application):
        return app
    if callable(app):
        app = app(config)
    if not isinstance(app, Application):
        raise click.ClickException(f"{target} is not an Application or an Application factory")
    return app


async def run_app(app: Application, stopped: asyncio.Event | None = None) -> BaseException | None:
    """Connect app, wait for a stop signal or a closed connection, then close it.

    stopped may be passed in to stop the consumer programmatically. Returns the
    error the broker connection closed with, if it dropped.
    """
    loop = asyncio.get_running_loop()
    stopped = stopped or asyncio.Event()
    dropped: list[BaseException | None] = []
    closing = False

    def on_closed(error: BaseException | None) -> None:
        if closing:
            return
        dropped.append(error)
        stopped.set()

    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stopped.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            logger.debug("Cannot install handler for %s", sig)

    app.on(EVENT_CONNECTION_CLOSED, on_closed)
    try:
        await app.connect()
        await stopped.wait()
        if not dropped:
            closing = True
            await app.close()
    finally:
        app.off(EVENT_CONNECTION_CLOSED, on_closed)
        for sig in installed:
            loop.remove_signal_handler(sig)
    return dropped[0] if dropped else None


@click.command()
@click.option("--app", "target", type=str, required=True, help="The application to run, as module:attribute")
@click.option(
    "--app-path",
    type=str,
    multiple=True,
    help="A directory to add to the import path, can be used multiple times",
)
@click.option("--rabbit-url", type=str, required=False, help="The broker URL, overrides RABBIT_URL")
@click.option("--queue-name", type=str, required=False, help="The queue to consume from, overrides QUEUE_NAME")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    help="Logging level",
)
def main(**kwargs: Any) -> None:
    """Consume messages with the given application until stopped.

    Settings are read from the environment (and a .env file if present); the
    --rabbit-url and --queue-name options take precedence. A factory target is
    called with the merged settings; an Application target keeps its own.
    """
    logging.basicConfig(
        level=kwargs["log_level"].upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if os.path.exists(".env"):
        dotenv.load_dotenv()

    config = get_settings().consumer_config()
    if kwargs["rabbit_url"]:
        config["rabbit_url"] = kwargs["rabbit_url"]
    if kwargs["queue_name"]:
        config["queue_name"] = kwargs["queue_name"]

    try:
        app = load_app(kwargs["target"], config, app_path=list(kwargs["app_path"]))
        error = asyncio.run(run_app(app))
    except ConfigurationError as err:
        raise click.ClickException(str(err)) from err
    except (UsageError, LifecycleError) as err:
        cause = f": {err.__cause__}" if err.__cause__ else ""
        raise click.ClickException(f"{err}{cause}") from err

    if error is not None:
        raise click.ClickException(f"Broker connection closed: {error}")
    click.echo("Consumer stopped")


if __name__ == "__main__":
    main()
