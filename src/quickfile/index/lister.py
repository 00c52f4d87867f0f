import os
import subprocess
from pathlib import Path

from quickfile.errors import IndexRebuildError
from quickfile.logger import logging

logger = logging.getLogger(__name__)

DEFAULT_LISTER = "fd"
FALLBACK_HOME = "/home"


def resolve_home() -> str:
    """Return the user's home directory, or /home if it cannot be resolved."""
    return os.environ.get("HOME") or FALLBACK_HOME


def list_files(root: Path | str, command: str = DEFAULT_LISTER) -> list[str]:
    """
    List every regular file below ``root`` using the external listing utility.

    Returns the paths in the order the utility printed them, skipping blank lines.

    Raises:
        IndexRebuildError: If the utility is missing, exits non-zero, or prints
            output that is not valid UTF-8.
    """
    args = [command, ".", str(root), "--type", "file"]
    logger.debug("Running %s", " ".join(args))
    try:
        completed = subprocess.run(args, capture_output=True, check=False)
    except FileNotFoundError:
        raise IndexRebuildError(f"{command} command not found") from None
    except OSError as e:
        raise IndexRebuildError(f"{command} command could not be started: {e}") from e

    if completed.returncode != 0:
        stderr = completed.stderr.decode("utf-8", errors="replace").strip()
        raise IndexRebuildError(f"{command} command failed: {stderr}")

    try:
        stdout = completed.stdout.decode("utf-8")
    except UnicodeDecodeError as e:
        raise IndexRebuildError(f"{command} output is not valid UTF-8: {e}") from e

    # Only "\n" separates entries; other line breaks are legal in file names.
    return [line.removesuffix("\r") for line in stdout.split("\n") if line.strip()]
