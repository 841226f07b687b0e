"""Effective option lookup, as an ssh client would resolve an alias."""

import logging
from typing import Any

from paramiko.config import SSHConfig
from paramiko.ssh_exception import ConfigParseError

logger = logging.getLogger(__name__)


def resolve_options(text: str, alias: str) -> dict[str, Any]:
    """Return the options ssh would apply when connecting to alias.

    Keys are lowercased directive names. Across blocks the first value
    obtained for each option wins, except identityfile which accumulates.
    """
    try:
        config = SSHConfig.from_text(text)
        options = config.lookup(alias)
    except ConfigParseError as e:
        raise ValueError(f"Cannot resolve {alias!r}: {e}") from e

    logger.debug(f"Resolved {alias} to {len(options)} option(s)")
    return dict(options)
