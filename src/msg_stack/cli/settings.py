"""Show the consumer settings.

CLI that prints the configuration an application factory would receive, with
the broker password masked.
"""

import os
from urllib.parse import urlparse

import click
import dotenv
from icecream import ic

from config import get_settings

MASK = "****"


def mask_config(config: dict) -> dict:
    """Return a copy of config with passwords hidden, including the one in rabbit_url."""
    masked = dict(config)
    if masked.get("password"):
        masked["password"] = MASK
    url = masked.get("rabbit_url")
    if url:
        parts = urlparse(url)
        if parts.password:
            netloc = parts.netloc.replace(f":{parts.password}@", f":{MASK}@", 1)
            masked["rabbit_url"] = parts._replace(netloc=netloc).geturl()
    return masked


@click.command()
@click.option("--queue-name", type=str, required=False, help="The queue name to show, overrides QUEUE_NAME")
def main(queue_name: str | None) -> dict:
    """Print the consumer settings resolved from the environment."""
    click.echo("Consumer settings")

    if os.path.exists(".env"):
        dotenv.load_dotenv()

    settings = get_settings()
    config = settings.consumer_config()
    if queue_name:
        config["queue_name"] = queue_name
    if not config.get("rabbit_url") and not config.get("hosts"):
        raise click.ClickException("No RABBIT_URL or RABBIT_HOSTS set and no .env file found")

    masked = mask_config(config)
    ic(settings.app_name, masked)
    return masked


if __name__ == "__main__":
    main()
