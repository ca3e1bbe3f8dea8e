import io
import logging
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Dict, List, Tuple

import pytest


@pytest.fixture
def capture_logs():
    """Fixture to capture log output during tests."""
    log_stream = io.StringIO()
    handler = logging.StreamHandler(log_stream)
    logger = logging.getLogger("modinspect")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    yield log_stream

    logger.removeHandler(handler)
    log_stream.close()


# registry fixtures


class FakeProxy:
    """A module proxy served from a dict of URL paths to (status, body)."""

    def __init__(self):
        self.routes: Dict[str, Tuple[int, bytes]] = {}
        self.drips: Dict[str, float] = {}
        self.requests: List[str] = []
        self._lock = threading.Lock()
        self.release = threading.Event()
        self.release.set()
        self.in_flight = 0
        self.max_in_flight = 0

        proxy = self

        class Handler(BaseHTTPRequestHandler):
            def do_GET(self):
                with proxy._lock:
                    proxy.requests.append(self.path)
                    proxy.in_flight += 1
                    proxy.max_in_flight = max(proxy.max_in_flight, proxy.in_flight)
                try:
                    proxy.release.wait(5)
                finally:
                    with proxy._lock:
                        proxy.in_flight -= 1

                status, body = proxy.routes.get(self.path, (404, b"not found"))
                self.send_response(status)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()

                delay = proxy.drips.get(self.path)
                if not delay:
                    self.wfile.write(body)
                    return
                try:
                    for start in range(0, len(body), 4):
                        self.wfile.write(body[start : start + 4])
                        self.wfile.flush()
                        time.sleep(delay)
                except (BrokenPipeError, ConnectionResetError):
                    pass

            def log_message(self, format, *args):
                pass

        self.server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
        self.server.daemon_threads = True
        self.url = f"http://127.0.0.1:{self.server.server_address[1]}"
        self._thread = threading.Thread(target=self.server.serve_forever, daemon=True)

    def serve(self, path: str, body, status: int = 200) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[path] = (status, body)

    def drip(self, path: str, delay: float) -> None:
        """Send the body of path four bytes at a time, delay seconds apart."""
        self.drips[path] = delay

    def serve_latest(self, module: str, version: str) -> None:
        self.serve(
            f"/{module}/@latest",
            f'{{"Version":"{version}","Time":"2024-01-01T00:00:00Z"}}',
        )

    def serve_mod(self, module: str, version: str, requires: List[str]) -> None:
        lines = [f"module {module}", "", "go 1.21", ""]
        if requires:
            lines.append("require (")
            lines.extend(f"\t{r}" for r in requires)
            lines.append(")")
        self.serve(f"/{module}/@v/{version}.mod", "\n".join(lines) + "\n")

    def count(self, path: str) -> int:
        with self._lock:
            return self.requests.count(path)

    def start(self) -> "FakeProxy":
        self._thread.start()
        return self

    def stop(self) -> None:
        self.release.set()
        self.server.shutdown()
        self.server.server_close()


@pytest.fixture
def fake_proxy():
    proxy = FakeProxy().start()
    yield proxy
    proxy.stop()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# go.mod fixtures

SAMPLE_GO_MOD = """module example.com/app

go 1.21

require (
\tgithub.com/direct/a v1.2.0
\tgithub.com/direct/b v0.3.1 // pinned
)

require (
\tgithub.com/indirect/c v2.0.0+incompatible // indirect
\tgolang.org/x/text v0.14.0 // indirect
)
"""


@pytest.fixture
def go_mod(tmp_path) -> Path:
    path = tmp_path / "go.mod"
    path.write_text(SAMPLE_GO_MOD)
    return path
