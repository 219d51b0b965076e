"""
Development server.

Serves the build directory over HTTP and pushes reload notifications to the
browser through server-sent events on ``/__reload``:

  {"action": "reload"}                  — a page was re-emitted, or a later
                                          compilation succeeded
  {"action": "errors", "errors": [...]} — the last compilation failed
  {"action": "built"}                   — the first compilation succeeded

The packaged ``client/dev-client.js`` listens on that stream.
"""

import json
import os
import queue
import threading
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

RELOAD_PATH = "/__reload"


# ---------------------------------------------------------------------------
# Reload channel
# ---------------------------------------------------------------------------

class ReloadChannel:
    """Fan-out of events to every connected browser."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: list[queue.Queue] = []
        self.closed = False

    def subscribe(self) -> queue.Queue:
        events: queue.Queue = queue.Queue()
        with self._lock:
            self._subscribers.append(events)
        return events

    def unsubscribe(self, events: queue.Queue) -> None:
        with self._lock:
            if events in self._subscribers:
                self._subscribers.remove(events)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: dict) -> int:
        """Queue *event* for every subscriber; returns how many got it."""
        with self._lock:
            subscribers = list(self._subscribers)
        for events in subscribers:
            events.put(event)
        return len(subscribers)

    def close(self) -> None:
        """End every open event stream."""
        with self._lock:
            self.closed = True
            subscribers = list(self._subscribers)
        for events in subscribers:
            events.put(None)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

def make_handler(directory: Path, channel: ReloadChannel, heartbeat: float):
    """Request handler class bound to *directory* and *channel*."""

    class DevRequestHandler(SimpleHTTPRequestHandler):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, directory=str(directory), **kwargs)

        def do_GET(self):
            if self.path.split("?", 1)[0] == RELOAD_PATH:
                self._stream_events()
                return
            super().do_GET()

        def end_headers(self):
            self.send_header("Cache-Control", "no-store")
            super().end_headers()

        def _stream_events(self):
            self.send_response(200)
            self.send_header("Content-Type", "text/event-stream")
            self.send_header("Connection", "keep-alive")
            self.end_headers()

            events = channel.subscribe()
            try:
                self._write(b": connected\n\n")
                while not channel.closed:
                    try:
                        event = events.get(timeout=heartbeat)
                    except queue.Empty:
                        self._write(b": heartbeat\n\n")
                        continue
                    if event is None:
                        break
                    self._write(f"data: {json.dumps(event)}\n\n".encode("utf-8"))
            except (BrokenPipeError, ConnectionResetError):
                # Browser went away.
                return
            finally:
                channel.unsubscribe(events)

        def _write(self, chunk: bytes) -> None:
            self.wfile.write(chunk)
            self.wfile.flush()

        def log_message(self, format, *args):
            pass  # Quiet; webpack output is what matters in dev

    return DevRequestHandler


class DevServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, directory: Path, port: int, channel: ReloadChannel,
                 heartbeat: float = 2.0, host: str = ""):
        self.directory = Path(directory)
        self.channel = channel
        super().__init__((host, port), make_handler(self.directory, channel, heartbeat))

    @property
    def url(self) -> str:
        return f"http://localhost:{self.server_address[1]}"


# ---------------------------------------------------------------------------
# Output watcher
# ---------------------------------------------------------------------------

class _EmitHandler(FileSystemEventHandler):
    """Debounced callback for files written with one of *suffixes*."""

    def __init__(self, on_emit: Callable[[Path], None], suffixes: tuple[str, ...], debounce: float):
        self.on_emit = on_emit
        self.suffixes = suffixes
        self.debounce = debounce
        self.timer: threading.Timer | None = None
        self.lock = threading.Lock()

    def _schedule(self, path: Path) -> None:
        with self.lock:
            if self.timer:
                self.timer.cancel()
            self.timer = threading.Timer(self.debounce, self.on_emit, args=(path,))
            self.timer.daemon = True
            self.timer.start()

    def _handle(self, event, src) -> None:
        if event.is_directory:
            return
        path = Path(os.fsdecode(src))
        if path.suffix in self.suffixes:
            self._schedule(path)

    def on_created(self, event):
        self._handle(event, event.src_path)

    def on_modified(self, event):
        self._handle(event, event.src_path)

    def on_moved(self, event):
        self._handle(event, event.dest_path)

    def cancel(self) -> None:
        with self.lock:
            if self.timer:
                self.timer.cancel()
                self.timer = None


class OutputWatcher:
    """Calls *on_emit* when the bundler (re-)writes a page in *directory*."""

    def __init__(self, directory: Path, on_emit: Callable[[Path], None],
                 suffixes: tuple[str, ...] = (".html",), debounce: float = 0.1):
        self.directory = Path(directory)
        self.handler = _EmitHandler(on_emit, suffixes, debounce)
        self.observer = Observer()

    def start(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self.observer.schedule(self.handler, str(self.directory), recursive=True)
        self.observer.start()

    def stop(self) -> None:
        self.handler.cancel()
        self.observer.stop()
        self.observer.join()
