"""Provider configuration and logging setup."""

import logging
import os

import httpx
from pydantic import BaseModel

DEFAULT_LOG_FORMAT = '%(asctime)s:%(name)s:%(levelname)s:%(message)s'
DEFAULT_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ProviderConfig(BaseModel):
    """Connection settings for an OpenAI-compatible endpoint.

    Timeouts are in seconds.  The read timeout is generous because slow
    free-tier models can pause for minutes between tokens.
    """

    base_url: str = "https://openrouter.ai/api/v1"
    api_key: str | None = None
    model: str | None = None
    temperature: float = 0.7
    max_tokens: int | None = None
    connect_timeout: float = 60.0
    read_timeout: float = 180.0
    write_timeout: float = 60.0
    max_retries: int = 5
    app_name: str = "codeloom"
    site_url: str | None = None

    def timeout(self) -> httpx.Timeout:
        return httpx.Timeout(
            self.read_timeout,
            connect=self.connect_timeout,
            read=self.read_timeout,
            write=self.write_timeout,
        )

    @classmethod
    def from_env(cls, prefix: str = "CODELOOM_") -> "ProviderConfig":
        """Build a config from ``<prefix>*`` environment variables.

        Unset variables keep their defaults.
        """
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{prefix}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        return cls.model_validate(values)


def configure_logging(
    level: int = logging.INFO,
    log_file: str | None = None,
) -> None:
    """Install stream (and optional file) handlers on the root logger."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=level,
        format=DEFAULT_LOG_FORMAT,
        datefmt=DEFAULT_DATE_FORMAT,
        handlers=handlers,
    )
