from __future__ import annotations

import http.client
import json
import threading
from pathlib import Path
from types import SimpleNamespace

import pytest

from mpa_builder.dev_server import DevServer, ReloadChannel, _EmitHandler


def test_channel_fans_out_to_subscribers() -> None:
    channel = ReloadChannel()
    first, second = channel.subscribe(), channel.subscribe()
    assert channel.publish({"action": "reload"}) == 2
    assert first.get_nowait() == {"action": "reload"}
    assert second.get_nowait() == {"action": "reload"}

    channel.unsubscribe(first)
    assert channel.subscriber_count == 1
    assert channel.publish({"action": "built"}) == 1
    assert first.empty()


def test_channel_close_ends_streams() -> None:
    channel = ReloadChannel()
    events = channel.subscribe()
    channel.close()
    assert channel.closed
    assert events.get_nowait() is None


@pytest.fixture
def server(tmp_path: Path):
    (tmp_path / "index.html").write_text("<h1>hi</h1>", encoding="utf-8")
    channel = ReloadChannel()
    srv = DevServer(tmp_path, 0, channel, heartbeat=0.05, host="127.0.0.1")
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    yield srv
    channel.close()
    srv.shutdown()
    srv.server_close()


def test_serves_build_directory(server: DevServer) -> None:
    conn = http.client.HTTPConnection("127.0.0.1", server.server_address[1], timeout=5)
    conn.request("GET", "/index.html")
    response = conn.getresponse()
    assert response.status == 200
    assert response.read() == b"<h1>hi</h1>"
    assert response.getheader("Cache-Control") == "no-store"
    conn.close()


def test_reload_stream_delivers_published_events(server: DevServer) -> None:
    conn = http.client.HTTPConnection("127.0.0.1", server.server_address[1], timeout=5)
    conn.request("GET", "/__reload")
    response = conn.getresponse()
    assert response.status == 200
    assert response.getheader("Content-Type") == "text/event-stream"
    assert response.fp.readline() == b": connected\n"

    server.channel.publish({"action": "reload"})

    data = None
    for _ in range(100):
        line = response.fp.readline()
        if line.startswith(b"data: "):
            data = json.loads(line[len(b"data: "):])
            break
    assert data == {"action": "reload"}
    conn.close()


def test_url_uses_bound_port(server: DevServer) -> None:
    assert server.url == f"http://localhost:{server.server_address[1]}"


def test_emit_handler_debounces_html_writes(tmp_path: Path) -> None:
    emitted: list[Path] = []
    done = threading.Event()

    def on_emit(path: Path) -> None:
        emitted.append(path)
        done.set()

    handler = _EmitHandler(on_emit, (".html",), debounce=0.05)
    page = str(tmp_path / "fr" / "index.html")
    handler.on_modified(SimpleNamespace(is_directory=False, src_path=str(tmp_path / "app.js")))
    handler.on_created(SimpleNamespace(is_directory=False, src_path=page))
    handler.on_modified(SimpleNamespace(is_directory=False, src_path=page))
    handler.on_modified(SimpleNamespace(is_directory=True, src_path=str(tmp_path / "fr")))

    assert done.wait(2)
    handler.cancel()
    assert emitted == [Path(page)]
