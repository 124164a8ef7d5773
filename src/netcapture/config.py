"""Environment-based configuration.

Environment variables:
    NETCAPTURE_URL_FILTER: Default URL substring filter
    NETCAPTURE_CONTENT_TYPE_FILTER: Default Content-Type substring filter
    NETCAPTURE_POLL_INTERVAL_MS: Polling strategy cadence (default: 300)
    NETCAPTURE_PENDING_TTL: Seconds before an uncompleted request is forgotten
        (default: unset, never forgotten)
    NETCAPTURE_HEADLESS: Set to "false" to show the browser window (default: true)
"""

from __future__ import annotations

import os

from netcapture.models import DEFAULT_POLL_INTERVAL, EventStreamConfig

URL_FILTER_ENV_VAR = "NETCAPTURE_URL_FILTER"
CONTENT_TYPE_FILTER_ENV_VAR = "NETCAPTURE_CONTENT_TYPE_FILTER"
POLL_INTERVAL_ENV_VAR = "NETCAPTURE_POLL_INTERVAL_MS"
PENDING_TTL_ENV_VAR = "NETCAPTURE_PENDING_TTL"
HEADLESS_ENV_VAR = "NETCAPTURE_HEADLESS"


def get_headless_mode() -> bool:
    """Get headless mode from NETCAPTURE_HEADLESS.

    Returns:
        True unless the variable is set to "false"
    """
    return os.environ.get(HEADLESS_ENV_VAR, "true").lower() != "false"


def _env_str(name: str) -> str | None:
    value = os.environ.get(name)
    return value if value else None


def _env_float(name: str) -> float | None:
    value = os.environ.get(name)
    if not value:
        return None
    try:
        return float(value)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e


def config_from_env(
    url_substring_filter: str | None = None,
    content_type_substring_filter: str | None = None,
    poll_interval: float | None = None,
    pending_ttl: float | None = None,
) -> EventStreamConfig:
    """Build a stream configuration from the environment.

    Arguments that are not None take precedence over the environment.

    Args:
        url_substring_filter: URL substring filter
        content_type_substring_filter: Content-Type substring filter
        poll_interval: Polling cadence in seconds
        pending_ttl: Correlation record TTL in seconds

    Returns:
        Validated configuration

    Raises:
        ValueError: If an environment value is not a number
        pydantic.ValidationError: If a value is out of range
    """
    if poll_interval is None:
        interval_ms = _env_float(POLL_INTERVAL_ENV_VAR)
        poll_interval = interval_ms / 1000 if interval_ms is not None else DEFAULT_POLL_INTERVAL

    return EventStreamConfig(
        url_substring_filter=(
            url_substring_filter if url_substring_filter is not None else _env_str(URL_FILTER_ENV_VAR)
        ),
        content_type_substring_filter=(
            content_type_substring_filter
            if content_type_substring_filter is not None
            else _env_str(CONTENT_TYPE_FILTER_ENV_VAR)
        ),
        poll_interval=poll_interval,
        pending_ttl=pending_ttl if pending_ttl is not None else _env_float(PENDING_TTL_ENV_VAR),
    )
