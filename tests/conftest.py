import json
import socket
import threading
import time

import pytest

import vndb
from vndb.core import codec

DBSTATS = {
    "users": 140000,
    "posts": 1300000,
    "threads": 14000,
    "vn": 34000,
    "releases": 87000,
    "tags": 2600,
    "staff": 24000,
    "producers": 12000,
    "chars": 100000,
    "traits": 2900,
}

FIXTURE_VN_ID = 20471
FIXTURE_VN_TITLE = "Fixture Visual Novel"


def wait_for(predicate, timeout=5.0, interval=0.01):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def frame(keyword, payload=None):
    return codec.encode(keyword, payload)


def default_handler(conn, line):
    """Answer the way the real server does for the commands the tests use."""
    if line.startswith("login"):
        return frame("ok")
    if line == "dbstats":
        return frame("dbstats", DBSTATS)
    if line.startswith("get vn ") and f"(id = {FIXTURE_VN_ID})" in line:
        item = {"id": FIXTURE_VN_ID, "title": FIXTURE_VN_TITLE}
        return frame("results", {"num": 1, "more": False, "items": [item]})
    if line.startswith("get "):
        return frame("results", {"num": 0, "more": False, "items": []})
    if line.startswith("set "):
        return frame("ok")
    return frame("error", {"id": "parse", "msg": f"Invalid command: {line}"})


class FakeConnection:
    def __init__(self, server, sock):
        self.server = server
        self.sock = sock
        self.lines = []
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    @property
    def commands(self):
        """Lines received after the login exchange."""
        return [line for line in self.lines if not line.startswith("login")]

    @property
    def login(self):
        for line in self.lines:
            if line.startswith("login"):
                return json.loads(line.partition(" ")[2])
        return None

    def send(self, data):
        with self._lock:
            self.sock.sendall(data)

    def close(self):
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.sock.close()

    def _serve(self):
        buf = codec.FrameBuffer()
        while True:
            try:
                chunk = self.sock.recv(65536)
            except OSError:
                return
            if not chunk:
                return
            buf.feed(chunk)
            for data in iter(buf.next_frame, None):
                line = data[:-1].decode("utf-8")
                self.lines.append(line)
                reply = self.server.handler(self, line)
                if reply:
                    try:
                        self.send(reply)
                    except OSError:
                        return


class FakeServer:
    """Plain-TCP stand-in for the API server, driven by a handler function.

    The handler gets ``(connection, line)`` and returns the bytes to send
    back, or ``None`` to hold the reply.
    """

    def __init__(self, handler=default_handler):
        self.handler = handler
        self.connections = []
        self._listener = socket.create_server(("127.0.0.1", 0))
        self.port = self._listener.getsockname()[1]
        self._running = True
        self._thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._thread.start()

    def client(self, **kwargs):
        kwargs.setdefault("use_tls", False)
        kwargs.setdefault("connect_timeout", 5.0)
        return vndb.Client("127.0.0.1", self.port, **kwargs)

    def wait_connections(self, count=1):
        assert wait_for(lambda: len(self.connections) >= count)
        return self.connections[count - 1]

    def stop(self):
        self._running = False
        try:
            self._listener.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self._listener.close()
        for conn in self.connections:
            conn.close()

    def _accept_loop(self):
        while self._running:
            try:
                sock, _ = self._listener.accept()
            except OSError:
                return
            self.connections.append(FakeConnection(self, sock))


def holding_handler(conn, line):
    """Answer login, hold everything else."""
    if line.startswith("login"):
        return frame("ok")
    return None


@pytest.fixture
def server():
    srv = FakeServer()
    yield srv
    srv.stop()


@pytest.fixture
def holding_server():
    srv = FakeServer(holding_handler)
    yield srv
    srv.stop()


@pytest.fixture(autouse=True)
def stop_global_session():
    yield
    vndb.stop()
