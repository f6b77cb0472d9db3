# tests/conftest.py
"""
Offline fixtures: a stub transport adapter for REST and a fake XO server for JSON-RPC.
"""
import io
import json
import queue
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qsl, urlsplit

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from xoclient.config import ClientConfig
from xoclient.rest import RestClient
from xoclient.retry import Retrier, RetryMode
from xoclient.tasks import TaskService

BASE = "https://xo.test"
TOKEN = "secret-token"
NO_REPLY = object()


# ------------------ REST ------------------

class StubAdapter(BaseAdapter):
    """
    Routes requests by (METHOD, path relative to /rest/v0) to canned answers.

    An answer is (status, body), (status, body, content_type) or a callable(request)
    returning one. Several answers for one route are served in order, the last one
    repeating. Strings are sent as text/plain, bytes as octet-stream, anything else
    as JSON, unless a content type is given.
    """

    def __init__(self):
        super().__init__()
        self.routes = {}
        self.requests = []
        self.lock = threading.Lock()

    def on(self, method, path, *answers):
        self.routes[(method, "/rest/v0/" + path)] = list(answers)
        return self

    def calls(self, method=None, path=None):
        with self.lock:
            return [r for r in self.requests
                    if (method is None or r.method == method)
                    and (path is None or urlsplit(r.url).path == "/rest/v0/" + path)]

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        with self.lock:
            self.requests.append(request)
            answers = self.routes.get((request.method, urlsplit(request.url).path))
            if not answers:
                answer = (404, "no such route")
            elif len(answers) > 1:
                answer = answers.pop(0)
            else:
                answer = answers[0]
        if callable(answer):
            answer = answer(request)
        status, body, *content_type = answer
        return make_response(request, status, body, *content_type)

    def close(self):
        pass


def make_response(request, status, body, content_type=None):
    if isinstance(body, bytes):
        data, ctype = body, "application/octet-stream"
    elif isinstance(body, str):
        data, ctype = body.encode(), "text/plain; charset=utf-8"
    elif body is None:
        data, ctype = b"", "application/json"
    else:
        data, ctype = json.dumps(body).encode(), "application/json; charset=utf-8"
    if content_type is not None:
        ctype = content_type
    resp = requests.Response()
    resp.status_code = status
    resp.reason = "OK" if status < 400 else "Error"
    resp.headers = CaseInsensitiveDict({"Content-Type": ctype, "Content-Length": str(len(data))})
    resp.raw = io.BytesIO(data)
    resp.encoding = "utf-8"
    resp.url = request.url
    resp.request = request
    return resp


def query_of(request):
    return dict(parse_qsl(urlsplit(request.url).query))


class SlowXOHandler(BaseHTTPRequestHandler):
    """GET and PUT hang until the test releases them; POST answers at once."""

    def do_GET(self):
        self.server.hits.append(("GET", self.path))
        self.server.release.wait(10)
        self._reply({"id": "task-1", "status": "pending"})

    def do_PUT(self):
        self.server.hits.append(("PUT", self.path))
        self.server.release.wait(10)
        self._reply({"success": True})

    def do_POST(self):
        self.server.hits.append(("POST", self.path))
        self.rfile.read(int(self.headers.get("Content-Length") or 0))
        self._reply({"success": True})

    def _reply(self, body):
        data = json.dumps(body).encode()
        try:
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(data)))
            self.end_headers()
            self.wfile.write(data)
        except OSError:
            # the client hung up first
            pass

    def log_message(self, format, *args):
        pass


# ------------------ JSON-RPC ------------------

class RpcFault(Exception):
    def __init__(self, code, message, data=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


class FakeWebSocket:
    """One connection to FakeXOServer. Replies are queued for the client's reader thread."""

    def __init__(self, server, index):
        self.server = server
        self.index = index
        self.inbox = queue.Queue()
        self.closed = False

    def send(self, frame):
        if self.closed:
            raise ConnectionClosedError(None, None)
        msg = json.loads(frame)
        method, params = msg["method"], msg.get("params")
        self.server.record(method, params, self)
        handler = self.server.handlers.get(method)
        try:
            if handler is None:
                raise RpcFault(-32601, f"method not found: {method}")
            result = handler(params, self)
        except RpcFault as fault:
            error = {"code": fault.code, "message": fault.message}
            if fault.data is not None:
                error["data"] = fault.data
            self.inbox.put(json.dumps({"jsonrpc": "2.0", "id": msg["id"], "error": error}))
            return
        if result is NO_REPLY:
            return
        self.inbox.put(json.dumps({"jsonrpc": "2.0", "id": msg["id"], "result": result}))

    def push(self, message):
        self.inbox.put(json.dumps(message))

    def recv(self):
        item = self.inbox.get()
        if item is None:
            raise ConnectionClosedOK(None, None)
        return item

    def close(self):
        if not self.closed:
            self.closed = True
            self.inbox.put(None)

    def drop_later(self, delay):
        threading.Timer(delay, self.close).start()


class FakeXOServer:
    """Scriptable JSON-RPC endpoint. Handlers take (params, connection) and return a result."""

    def __init__(self, token=TOKEN):
        self.token = token
        self.calls = []
        self.connections = []
        self.lock = threading.Lock()
        self.handlers = {
            "session.signIn": self._sign_in,
            "token.create": lambda params, conn: "minted-token",
        }

    def _sign_in(self, params, conn):
        if params.get("token") == self.token:
            return {"id": "user-1", "email": "admin@example.org"}
        if params.get("email") == "admin@example.org" and params.get("password") == "pw":
            return {"id": "user-1", "email": "admin@example.org"}
        raise RpcFault(3, "invalid credentials")

    def on(self, method, result=None, handler=None):
        self.handlers[method] = handler or (lambda params, conn: result)
        return self

    def record(self, method, params, conn):
        with self.lock:
            self.calls.append((method, params, conn.index))

    def methods(self):
        with self.lock:
            return [c[0] for c in self.calls]

    def connect(self, url, ssl_context=None, open_timeout=None):
        with self.lock:
            conn = FakeWebSocket(self, len(self.connections))
            self.connections.append(conn)
        return conn


# ------------------ fixtures ------------------

@pytest.fixture
def config():
    return ClientConfig.from_values(url=BASE, token=TOKEN)


@pytest.fixture
def stub():
    return StubAdapter()


@pytest.fixture
def http_session(stub):
    s = requests.Session()
    s.mount("https://", stub)
    s.mount("http://", stub)
    return s


@pytest.fixture
def rest(config, http_session):
    client = RestClient(config, lambda: TOKEN, retrier=Retrier(RetryMode.NONE), session=http_session)
    yield client
    client.close()


@pytest.fixture
def tasks(rest):
    return TaskService(rest, poll_interval=0.01, max_poll_interval=0.05, ramp_polls=3, abort_grace=1.0)


@pytest.fixture
def server():
    return FakeXOServer()


@pytest.fixture
def fast_retrier():
    return Retrier(RetryMode.BACKOFF, max_time=5.0, sleep=lambda s: None)


@pytest.fixture
def slow_xo():
    """A real HTTP server on localhost whose GET and PUT replies never arrive in time."""
    httpd = ThreadingHTTPServer(("127.0.0.1", 0), SlowXOHandler)
    httpd.daemon_threads = True
    httpd.hits = []
    httpd.release = threading.Event()
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    httpd.url = f"http://127.0.0.1:{httpd.server_address[1]}"
    yield httpd
    httpd.release.set()
    httpd.shutdown()
    httpd.server_close()
    thread.join(5)
