"""Environment variable utility functions for MCP Jira Cloud."""

import logging
import os

logger = logging.getLogger("mcp-jira-cloud.utils.env")


def is_env_extended_truthy(env_var_name: str, default: str = "") -> bool:
    """Check if environment variable is set to an extended truthy value.

    Considers 'true', '1', 'yes', 'y', 'on' as truthy values (case-insensitive).
    Used for READ_ONLY_MODE and similar flags.

    Args:
        env_var_name: Name of the environment variable to check
        default: Default value if environment variable is not set

    Returns:
        True if the environment variable is set to a truthy value, False otherwise
    """
    return os.getenv(env_var_name, default).lower() in ("true", "1", "yes", "y", "on")


def is_env_ssl_verify(env_var_name: str, default: str = "true") -> bool:
    """Check SSL verification setting with secure defaults.

    Defaults to true unless explicitly set to false values.
    """
    return os.getenv(env_var_name, default).lower() not in ("false", "0", "no")


def get_env_float(env_var_name: str, default: float) -> float:
    """Read a float from the environment, falling back to ``default``.

    Invalid values are logged and ignored rather than aborting startup.
    """
    raw = os.getenv(env_var_name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(
            f"Ignoring invalid value for {env_var_name}: {raw!r} (using {default})"
        )
        return default


def get_env_int(env_var_name: str, default: int) -> int:
    """Read an integer from the environment, falling back to ``default``."""
    raw = os.getenv(env_var_name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(
            f"Ignoring invalid value for {env_var_name}: {raw!r} (using {default})"
        )
        return default
