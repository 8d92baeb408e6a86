"""Broker URL helper for the legacy host-list configuration."""

import random


def build_url(hosts: str | list[str] | tuple[str, ...], username: str, password: str, scheme: str = "amqp") -> str:
    """Return a broker URL, picking one host at random when given several."""
    if isinstance(hosts, (list, tuple)):
        if not hosts:
            raise ValueError("hosts must not be empty")
        host = random.choice(hosts)
    else:
        host = hosts
    return f"{scheme}://{username}:{password}@{host}"
