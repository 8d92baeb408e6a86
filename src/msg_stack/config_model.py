"""Consumer configuration model.

Validates the mapping an Application is constructed with: the broker URL and
the queue to consume from, or the legacy host list plus credentials from which
the broker URL is derived.
"""

from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from msg_stack.url import build_url

AMQP_SCHEMES = ("amqp", "amqps")
LEGACY_KEYS = ("hosts", "username", "password")


class ConsumerConfig(BaseModel):
    """Settings an Application needs to connect and consume.

    Unknown keys are kept so host applications can carry their own settings
    and read them back with Application.get().
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    rabbit_url: str = Field(..., description="Full broker connection URL (amqp:// or amqps://)")
    queue_name: str = Field(..., min_length=1, description="Name of the queue to consume from")
    drain_timeout: float | None = Field(
        30.0,
        ge=0,
        description="Seconds close() waits for in-flight messages; None waits indefinitely",
    )

    @model_validator(mode="before")
    @classmethod
    def derive_rabbit_url(cls, data):
        """Build rabbit_url from hosts, username and password when it is not given."""
        if not isinstance(data, dict) or data.get("rabbit_url"):
            return data
        if not any(data.get(key) for key in LEGACY_KEYS):
            return data
        missing = [key for key in LEGACY_KEYS if not data.get(key)]
        if missing:
            raise ValueError(f"rabbit_url is not set and legacy keys are missing: {', '.join(missing)}")
        return {**data, "rabbit_url": build_url(data["hosts"], data["username"], data["password"])}

    @field_validator("rabbit_url")
    @classmethod
    def check_scheme(cls, value: str) -> str:
        """Only AMQP URLs are accepted."""
        scheme = urlparse(value).scheme
        if scheme not in AMQP_SCHEMES:
            raise ValueError(f"unsupported scheme {scheme!r}, expected one of: {', '.join(AMQP_SCHEMES)}")
        return value
