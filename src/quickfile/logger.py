"""Process-wide logging setup.

Modules import the configured module as ``from quickfile.logger import logging``
and create their own ``logger = logging.getLogger(__name__)``.
"""

import logging
import os
import sys

ENV_VAR_NAME = "QUICKFILE_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _resolve_level(value: str | None) -> int:
    if not value:
        return logging.INFO
    level = logging.getLevelName(value.strip().upper())
    # getLevelName returns a "Level X" string for unknown names
    return level if isinstance(level, int) else logging.INFO


logging.basicConfig(
    level=_resolve_level(os.environ.get(ENV_VAR_NAME)),
    format=LOG_FORMAT,
    stream=sys.stderr,
)

__all__ = ["logging"]
