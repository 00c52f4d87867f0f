import sys
from pathlib import Path

import click

from quickfile.config import DEFAULT_REQUEST_SOCKET, DEFAULT_SEARCH_LIMIT, ENV_REQUEST_SOCKET
from quickfile.errors import ClientError, DaemonNotRunningError, StartupError
from quickfile.index.messages import (
    DaemonRequest,
    ErrorResponse,
    RefreshRequest,
    SearchRequest,
    StatusRequest,
    encode_response,
)

SOCKET_OPTION = click.option(
    "--socket",
    "-s",
    "socket_path",
    help="Path of the daemon's request socket.",
    envvar=ENV_REQUEST_SOCKET,
    default=DEFAULT_REQUEST_SOCKET,
    show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
)


@click.group("quickfile")
def main():
    """
    Fuzzy file search daemon and client.
    """
    pass


@main.command("daemon")
@click.option(
    "--socket",
    "request_socket",
    help="Request socket to listen on. Overrides QUICKFILE_SOCKET.",
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.option(
    "--response-socket",
    "response_socket",
    help="Response socket to deliver results to. Overrides QUICKFILE_RESPONSE_SOCKET.",
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.option(
    "--root",
    "-r",
    help="Directory to index. Defaults to the home directory.",
    type=click.Path(exists=True, dir_okay=True, file_okay=False, path_type=Path),
)
@click.option(
    "--refresh-interval",
    help="Seconds between periodic index rebuilds.",
    type=click.FloatRange(min=0, min_open=True),
)
@click.option("--lister", help="File listing command (fd compatible).")
def daemon_cmd(
    request_socket: Path | None,
    response_socket: Path | None,
    root: Path | None,
    refresh_interval: float | None,
    lister: str | None,
):
    """
    Run the quickfile daemon.
    """
    from quickfile.config import load_config
    from quickfile.daemon import run_daemon

    try:
        config = load_config(
            request_socket=request_socket,
            response_socket=response_socket,
            root=root,
            refresh_interval=refresh_interval,
            lister=lister,
        )
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    try:
        run_daemon(config)
    except StartupError:
        sys.exit(1)
    except KeyboardInterrupt:
        pass


def _send(request: DaemonRequest, socket_path: Path, timeout: float):
    from quickfile.client import send_request

    try:
        click.echo(send_request(request, socket_path, timeout))
    except DaemonNotRunningError:
        click.echo(encode_response(ErrorResponse(message="Daemon not running")), err=True)
        sys.exit(1)
    except ClientError as e:
        click.echo(encode_response(ErrorResponse(message=str(e))), err=True)
        sys.exit(1)


TIMEOUT_OPTION = click.option(
    "--timeout",
    default=5.0,
    show_default=True,
    type=click.FloatRange(min=0, min_open=True),
    help="Seconds to wait for an in-band response.",
)


@main.command("search")
@click.argument("query", default="")
@click.option(
    "--limit",
    "-n",
    default=DEFAULT_SEARCH_LIMIT,
    show_default=True,
    type=click.IntRange(min=0),
    help="Maximum number of results.",
)
@SOCKET_OPTION
@TIMEOUT_OPTION
def search_cmd(query: str, limit: int, socket_path: Path, timeout: float):
    """
    Search indexed files by name.
    """
    _send(SearchRequest(query=query, limit=limit), socket_path, timeout)


@main.command("refresh")
@SOCKET_OPTION
@TIMEOUT_OPTION
def refresh_cmd(socket_path: Path, timeout: float):
    """
    Rebuild the daemon's index now.
    """
    _send(RefreshRequest(), socket_path, timeout)


@main.command("status")
@SOCKET_OPTION
@TIMEOUT_OPTION
def status_cmd(socket_path: Path, timeout: float):
    """
    Show the number of indexed files and when the index was last rebuilt.
    """
    _send(StatusRequest(), socket_path, timeout)


if __name__ == "__main__":
    main()
