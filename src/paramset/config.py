"""
Framework configuration for paramset.

Holds the module-level settings that the tree, accessor and JSON codec
consult at call time. Settings are stored as a single frozen dataclass so a
caller can swap them atomically and restore them afterwards.

Usage:
    >>> from paramset.config import get_config, set_config, config_override
    >>> get_config().path_separator
    '.'
    >>> with config_override(json_indent=None):
    ...     store.to_json()
"""

from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Generator, Optional
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParamSetConfig:
    """Settings shared by every ParameterSet in the process."""
    path_separator: str = "."
    json_indent: Optional[int] = 2
    json_sort_keys: bool = False
    # Enum kinds with aliases render as alias strings instead of raw codes
    enum_as_alias: bool = True
    # load_json() drops keys that are not part of the initial generation
    ignore_unknown_json_keys: bool = True


_config: ParamSetConfig = ParamSetConfig()


def get_config() -> ParamSetConfig:
    """Get the active framework configuration."""
    return _config


def set_config(config: ParamSetConfig) -> None:
    """Replace the active framework configuration.

    Args:
        config: New configuration. The separator must be a non-empty string.
    """
    global _config
    if not config.path_separator:
        raise ValueError("path_separator must be a non-empty string")
    _config = config
    logger.debug(f"paramset config set: {config}")


@contextmanager
def config_override(**changes) -> Generator[ParamSetConfig, None, None]:
    """Temporarily override individual configuration fields.

    Example:
        with config_override(enum_as_alias=False):
            text = store.to_json()  # enums render as raw codes
    """
    previous = get_config()
    set_config(replace(previous, **changes))
    try:
        yield get_config()
    finally:
        set_config(previous)
