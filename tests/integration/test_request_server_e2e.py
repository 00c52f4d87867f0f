from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Any

from quickfile.config import ResponseChannelIntervals
from quickfile.errors import IndexRebuildError
from quickfile.index.file_index import FileIndex
from quickfile.response_channel import ClientCounter, ResponseChannel
from quickfile.server import RequestServer

PATHS = ["/home/u/notes.txt", "/home/u/proj/app/main.rs"]


async def _exchange(socket_path: Path, frames: Sequence[str | bytes]) -> list[dict[str, Any]]:
    reader, writer = await asyncio.open_unix_connection(str(socket_path))
    responses = []
    try:
        for frame in frames:
            data = frame if isinstance(frame, bytes) else frame.encode("utf-8")
            writer.write(data + b"\n")
            await writer.drain()
            line = await asyncio.wait_for(reader.readline(), 5)
            responses.append(json.loads(line))
    finally:
        writer.close()
        await writer.wait_closed()
    return responses


def _serve(
    index: FileIndex,
    socket_dir: Path,
    scenario: Callable[[RequestServer], Awaitable[Any]],
    stream_limit: int | None = None,
) -> Any:
    async def main() -> Any:
        clients = ClientCounter()
        responder = ResponseChannel(
            socket_dir / "resp.sock", clients, ResponseChannelIntervals(0.01, 0.05, 0.02)
        )
        server = RequestServer(index, responder, clients, socket_dir / "req.sock")
        if stream_limit is not None:
            server.stream_limit = stream_limit
        await server.start()
        try:
            return await scenario(server)
        finally:
            await server.close()

    return asyncio.run(main())


def test_search_and_status_end_to_end(make_index, socket_dir: Path) -> None:
    index, _ = make_index(PATHS)

    async def scenario(server: RequestServer) -> list[dict[str, Any]]:
        return await _exchange(
            server.socket_path, ['{"type":"Search","query":"main"}', '{"type":"Status"}']
        )

    search, status = _serve(index, socket_dir, scenario)

    assert search["type"] == "SearchResults"
    assert search["total_files"] == 2
    assert search["results_count"] == len(search["results"]) == 1
    top = search["results"][0]
    assert top["path"] == "/home/u/proj/app/main.rs"
    assert top["display_path"] == "~/proj/app/main.rs"
    assert [m["char_index"] for m in top["matches"]] == [11, 12, 13, 14]
    assert top["score"] > 0

    assert status["type"] == "Status"
    assert status["files_count"] == 2
    assert status["last_updated"] > 0


def test_empty_query_browses_index(make_index, socket_dir: Path) -> None:
    index, _ = make_index(PATHS)

    async def scenario(server: RequestServer) -> list[dict[str, Any]]:
        return await _exchange(server.socket_path, ['{"type":"Search","query":"","limit":1}'])

    (response,) = _serve(index, socket_dir, scenario)
    assert response["results_count"] == 1
    assert response["results"][0] == {
        "path": "/home/u/notes.txt",
        "display_path": "~/notes.txt",
        "matches": [],
        "score": 0,
    }


def test_malformed_frames_get_errors_and_connection_survives(make_index, socket_dir: Path) -> None:
    index, _ = make_index(PATHS)

    async def scenario(server: RequestServer) -> list[dict[str, Any]]:
        return await _exchange(
            server.socket_path,
            ["garbage", b"\xff\xfe", '{"type":"Explode"}', '{"type":"Status"}'],
        )

    garbage, undecodable, unknown, status = _serve(index, socket_dir, scenario)
    assert garbage["type"] == "Error"
    assert garbage["message"].startswith("Invalid request: ")
    assert undecodable == {"type": "Error", "message": "Invalid request: frame is not valid UTF-8"}
    assert unknown["type"] == "Error"
    assert status == {"type": "Status", "files_count": 2, "last_updated": status["last_updated"]}


def test_refresh_reports_count_and_failures(make_index, socket_dir: Path) -> None:
    index, lister = make_index(PATHS)

    async def scenario(server: RequestServer) -> list[dict[str, Any]]:
        lister.paths = PATHS + ["/home/u/extra.md"]
        first = await _exchange(server.socket_path, ['{"type":"Refresh"}'])
        lister.error = IndexRebuildError("fd command failed: no such directory")
        second = await _exchange(server.socket_path, ['{"type":"Refresh"}', '{"type":"Status"}'])
        return first + second

    done, failed, status = _serve(index, socket_dir, scenario)
    assert done == {"type": "RefreshComplete", "files_count": 3}
    assert failed == {"type": "Error", "message": "fd command failed: no such directory"}
    assert status["files_count"] == 3


def test_concurrent_connections_match_sequential(make_index, socket_dir: Path) -> None:
    paths = [f"/home/u/d{i % 5}/item_{i}_main.txt" for i in range(200)]
    index, _ = make_index(paths)
    frame = '{"type":"Search","query":"main","limit":20}'

    async def scenario(server: RequestServer) -> tuple[list[Any], list[Any]]:
        sequential = [(await _exchange(server.socket_path, [frame]))[0] for _ in range(4)]
        concurrent = await asyncio.gather(
            *(_exchange(server.socket_path, [frame]) for _ in range(8))
        )
        return sequential, [responses[0] for responses in concurrent]

    sequential, concurrent = _serve(index, socket_dir, scenario)
    assert all(response == sequential[0] for response in sequential + concurrent)


def test_stale_socket_file_is_replaced(make_index, socket_dir: Path) -> None:
    index, _ = make_index(PATHS)
    (socket_dir / "req.sock").write_text("left over", encoding="utf-8")

    async def scenario(server: RequestServer) -> list[dict[str, Any]]:
        return await _exchange(server.socket_path, ['{"type":"Status"}'])

    (status,) = _serve(index, socket_dir, scenario)
    assert status["files_count"] == 2
    assert not (socket_dir / "req.sock").exists()


def test_active_clients_track_connections(make_index, socket_dir: Path) -> None:
    index, _ = make_index(PATHS)

    async def scenario(server: RequestServer) -> tuple[int, int]:
        reader, writer = await asyncio.open_unix_connection(str(server.socket_path))
        writer.write(b'{"type":"Status"}\n')
        await writer.drain()
        await reader.readline()
        during = server.clients.active
        writer.close()
        await writer.wait_closed()
        for _ in range(100):
            if server.clients.active == 0:
                break
            await asyncio.sleep(0.01)
        return during, server.clients.active

    during, after = _serve(index, socket_dir, scenario)
    assert (during, after) == (1, 0)


def test_responses_go_to_response_socket_when_connected(make_index, socket_dir: Path) -> None:
    index, _ = make_index(PATHS)
    response_path = socket_dir / "resp.sock"

    async def scenario(server: RequestServer) -> tuple[dict[str, Any], bool]:
        pushed: asyncio.Queue[bytes] = asyncio.Queue()

        async def on_daemon(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            while line := await reader.readline():
                await pushed.put(line)

        ui = await asyncio.start_unix_server(on_daemon, path=str(response_path))
        async with ui:
            reader, writer = await asyncio.open_unix_connection(str(server.socket_path))
            # first request is answered in-band; it also registers the client
            writer.write(b'{"type":"Status"}\n')
            await writer.drain()
            await reader.readline()

            await server.responder.step()
            assert server.responder.connected

            writer.write(b'{"type":"Search","query":"notes"}\n')
            await writer.drain()
            pushed_line = await asyncio.wait_for(pushed.get(), 5)
            try:
                await asyncio.wait_for(reader.readline(), 0.2)
            except TimeoutError:
                answered_in_band = False
            else:
                answered_in_band = True
            writer.close()
            await writer.wait_closed()
            await server.responder.close()
        return json.loads(pushed_line), answered_in_band

    pushed, answered_in_band = _serve(index, socket_dir, scenario)
    assert not answered_in_band
    assert pushed["type"] == "SearchResults"
    assert pushed["results"][0]["display_path"] == "~/notes.txt"


def test_overlong_frame_gets_error_before_close(make_index, socket_dir: Path) -> None:
    index, _ = make_index(PATHS)

    async def scenario(server: RequestServer) -> tuple[dict[str, Any], bytes]:
        reader, writer = await asyncio.open_unix_connection(str(server.socket_path))
        query = "x" * 500
        writer.write(f'{{"type":"Search","query":"{query}"}}\n'.encode("utf-8"))
        await writer.drain()
        line = await asyncio.wait_for(reader.readline(), 5)
        try:
            after = await asyncio.wait_for(reader.readline(), 5)
        except ConnectionResetError:
            after = b""
        writer.close()
        try:
            await writer.wait_closed()
        except ConnectionResetError:
            pass
        return json.loads(line), after

    response, after = _serve(index, socket_dir, scenario, stream_limit=64)
    assert response == {"type": "Error", "message": "Invalid request: frame too long"}
    assert after == b""
