"""Logging utilities for ntcli."""

import logging
from collections.abc import Mapping
from typing import Any, Literal

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_SENSITIVE_KEYS = frozenset(
    {
        "authorization",
        "access_token",
        "refresh_token",
        "client_secret",
        "token",
    }
)


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO",
) -> None:
    """Configure logging for ntcli. Output goes to stderr so command output stays clean.

    Args:
        level: the log level to use
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def redact_sensitive_data(
    data: Mapping[str, Any] | None,
    sensitive_keys: frozenset[str] | set[str] | None = None,
) -> Mapping[str, Any] | None:
    """Return a shallow copy with sensitive values replaced by "***".

    Bearer credentials keep their scheme so traces still show which kind of
    authorization was sent.

    Parameters
    ----------
    data:
        Original mapping (typically request/response headers). If *None* the
        function simply returns *None*.
    sensitive_keys:
        Optional set of lower-case keys that should be hidden; defaults to
        common credential header and field names.
    """

    if data is None:
        return None

    sensitive_keys = sensitive_keys or DEFAULT_SENSITIVE_KEYS

    redacted: dict[str, Any] = {}
    for key, value in data.items():
        if key.lower() in sensitive_keys:
            if isinstance(value, str) and value.lower().startswith("bearer "):
                redacted[key] = "Bearer ***"
            else:
                redacted[key] = "***"
        else:
            redacted[key] = value

    return redacted
