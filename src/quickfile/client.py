"""Minimal request-socket client used by the command line."""

import asyncio
from pathlib import Path

from quickfile.errors import ClientTimeoutError, DaemonNotRunningError
from quickfile.index.messages import DaemonRequest, encode_request

DEFAULT_TIMEOUT = 5.0  # seconds


async def send_request_async(
    request: DaemonRequest, socket_path: Path, timeout: float = DEFAULT_TIMEOUT
) -> str:
    """
    Send one request and return the raw response line.

    If the daemon delivered the response through the response socket instead,
    nothing comes back here and ClientTimeoutError is raised.
    """
    if not socket_path.exists():
        raise DaemonNotRunningError(socket_path)

    try:
        reader, writer = await asyncio.open_unix_connection(str(socket_path))
    except (ConnectionRefusedError, FileNotFoundError):
        raise DaemonNotRunningError(socket_path) from None

    try:
        writer.write(encode_request(request).encode("utf-8") + b"\n")
        await writer.drain()
        try:
            line = await asyncio.wait_for(reader.readline(), timeout)
        except TimeoutError:
            raise ClientTimeoutError(f"No response within {timeout:g}s") from None
    finally:
        writer.close()

    if not line:
        raise ClientTimeoutError("Daemon closed the connection without responding")
    return line.decode("utf-8").rstrip("\n")


def send_request(request: DaemonRequest, socket_path: Path, timeout: float = DEFAULT_TIMEOUT) -> str:
    return asyncio.run(send_request_async(request, socket_path, timeout))
