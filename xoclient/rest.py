# xoclient/rest.py
import contextlib
import json
import logging
import socket
import threading
from typing import Any, BinaryIO, Callable, Mapping, Optional

import requests
import urllib3
from requests import Session
from requests.adapters import HTTPAdapter
from requests.auth import AuthBase
from urllib3.connection import HTTPConnection, HTTPSConnection
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool
from urllib3.exceptions import InsecureRequestWarning
from urllib3.util.retry import Retry

from .codec import decode, to_jsonable
from .config import ClientConfig
from .context import CancelScope
from .errors import (AuthError, DeadlineExceeded, DecodeError, NotFoundError, OperationCancelled,
                     ServerError, TransportError, ValidationFailed)
from .paths import encode_params
from .retry import Retrier

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
POOL_SIZE = 10
CHUNK_SIZE = 64 * 1024

_STREAM_ERRORS = (requests.RequestException, urllib3.exceptions.HTTPError, OSError, ValueError)

# scope of the request being sent on this thread, read by the connection doing the I/O
_in_flight = threading.local()


@contextlib.contextmanager
def _bound_to(scope: Optional[CancelScope]):
    _in_flight.scope = scope
    try:
        yield
    finally:
        _in_flight.scope = None


class _ScopedConnectionMixin:
    """
    Shuts the socket down when the sending thread's CancelScope is cancelled
    while the request is written or its response headers are awaited, so the
    blocked call fails at once instead of waiting for the server or the timeout.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._unregister = None
        self._aborted = False

    def connect(self):
        super().connect()
        if self._aborted:
            self._shutdown()

    def request(self, *args, **kwargs):
        scope = getattr(_in_flight, "scope", None)
        self._aborted = False
        if scope is not None:
            self._unregister = scope.on_cancel(self._abort)
        try:
            return super().request(*args, **kwargs)
        except BaseException:
            self._release()
            raise

    def getresponse(self, *args, **kwargs):
        try:
            return super().getresponse(*args, **kwargs)
        finally:
            self._release()

    def _release(self):
        unregister, self._unregister = self._unregister, None
        if unregister is not None:
            unregister()

    def _abort(self):
        self._aborted = True
        self._shutdown()

    def _shutdown(self):
        sock = self.sock
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as exc:
            logger.debug("shutting down cancelled connection to %s: %s", self.host, exc)


class _ScopedHTTPConnection(_ScopedConnectionMixin, HTTPConnection):
    pass


class _ScopedHTTPSConnection(_ScopedConnectionMixin, HTTPSConnection):
    pass


class _ScopedHTTPConnectionPool(HTTPConnectionPool):
    ConnectionCls = _ScopedHTTPConnection


class _ScopedHTTPSConnectionPool(HTTPSConnectionPool):
    ConnectionCls = _ScopedHTTPSConnection


class TokenCookieAuth(AuthBase):
    """Attach the XO session token as ``Cookie: authenticationToken=<token>``."""

    def __init__(self, token_provider: Callable[[], Optional[str]]):
        self.token_provider = token_provider

    def __call__(self, r):
        token = self.token_provider()
        if token:
            r.headers["Cookie"] = f"authenticationToken={token}"
        return r


class CancellableAdapter(HTTPAdapter):
    """HTTPAdapter whose connections abort when the request's CancelScope is cancelled."""

    def init_poolmanager(self, *args, **kwargs):
        super().init_poolmanager(*args, **kwargs)
        self.poolmanager.pool_classes_by_scheme = {
            "http": _ScopedHTTPConnectionPool,
            "https": _ScopedHTTPSConnectionPool,
        }


class InsecureHostAdapter(CancellableAdapter):
    """Adapter that skips certificate checks. Mounted only on the configured XO origin."""

    def send(self, request, **kwargs):
        kwargs["verify"] = False
        return super().send(request, **kwargs)


class _SizedReader:
    """File-like wrapper with a fixed length, so requests sends Content-Length instead of chunking."""

    def __init__(self, reader: BinaryIO, size: int, scope: Optional[CancelScope]):
        self._reader = reader
        self._size = size
        self._scope = scope

    def __len__(self):
        return self._size

    def read(self, n: int = -1) -> bytes:
        if self._scope is not None and self._scope.cancelled:
            raise OperationCancelled("upload cancelled")
        return self._reader.read(n)

    def __iter__(self):
        while True:
            chunk = self.read(CHUNK_SIZE)
            if not chunk:
                return
            yield chunk


def _error_message(resp: requests.Response, body: str) -> str:
    return body.strip() or resp.reason or f"HTTP {resp.status_code}"


class RestClient:
    """
    Typed REST client for <url>/rest/v0.

    One requests.Session (and its connection pool) is shared by all calls.
    Paths are relative to the REST base, e.g. "vms/<id>/actions/start".

        rest.get("pools", params={"fields": "*"})
        rest.post("pools/<id>/actions/create_vm", body=params)
    """

    def __init__(self, config: ClientConfig, token_provider: Callable[[], Optional[str]],
                 retrier: Optional[Retrier] = None, session: Optional[Session] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.base_url = config.rest_base_url
        self.timeout = timeout
        self.retrier = retrier or Retrier(config.retry_mode, config.retry_max_time)
        self.session = session or self._make_session(config)
        self.session.auth = TokenCookieAuth(token_provider)

    def _make_session(self, config: ClientConfig) -> Session:
        s = Session()
        s.headers.update({"Accept": "application/json"})
        # retries are owned by Retrier so the budget covers every attempt
        no_retries = Retry(total=0, raise_on_status=False)
        adapter = CancellableAdapter(pool_connections=POOL_SIZE, pool_maxsize=POOL_SIZE, max_retries=no_retries)
        s.mount("http://", adapter)
        s.mount("https://", adapter)
        if config.insecure:
            urllib3.disable_warnings(InsecureRequestWarning)
            s.mount(config.origin, InsecureHostAdapter(pool_connections=POOL_SIZE, pool_maxsize=POOL_SIZE,
                                                       max_retries=no_retries))
        return s

    def close(self):
        self.session.close()

    def url_for(self, path: str, params: Optional[Mapping[str, Any]] = None) -> str:
        url = f"{self.base_url}/{path.lstrip('/')}"
        query = encode_params(params)
        return f"{url}?{query}" if query else url

    # ------------------ typed verbs ------------------

    def get(self, path: str, params: Optional[Mapping[str, Any]] = None, out: Any = None,
            scope: Optional[CancelScope] = None):
        return self._request("GET", path, params=params, out=out, scope=scope)

    def post(self, path: str, body: Any = None, out: Any = None, scope: Optional[CancelScope] = None,
             retry: bool = True):
        return self._request("POST", path, body=body, out=out, scope=scope, retry=retry)

    def put(self, path: str, body: Any = None, out: Any = None, scope: Optional[CancelScope] = None):
        return self._request("PUT", path, body=body, out=out, scope=scope)

    def delete(self, path: str, params: Optional[Mapping[str, Any]] = None, out: Any = None,
               scope: Optional[CancelScope] = None):
        return self._request("DELETE", path, params=params, out=out, scope=scope)

    # ------------------ streaming ------------------

    def download(self, path: str, sink: BinaryIO, params: Optional[Mapping[str, Any]] = None,
                 scope: Optional[CancelScope] = None, chunk_size: int = CHUNK_SIZE) -> int:
        """
        Stream a response body into ``sink`` and return the number of bytes written.
        Only the request itself is retried; once bytes reach the sink a failure is
        raised as is, and whatever was written stays in the sink.
        """
        url = self.url_for(path, params)
        resp = self.retrier.call(lambda: self._send("GET", url, scope=scope), scope=scope,
                                 description=f"GET {path}")
        unregister = scope.on_cancel(resp.close) if scope is not None else None
        written = 0
        try:
            chunks = resp.iter_content(chunk_size)
            while True:
                try:
                    chunk = next(chunks)
                except StopIteration:
                    break
                except _STREAM_ERRORS as exc:
                    if scope is not None and scope.cancelled:
                        raise OperationCancelled(f"download of {path} cancelled after {written} bytes") from exc
                    raise TransportError(f"download of {path} failed after {written} bytes: {exc}") from exc
                if chunk:
                    sink.write(chunk)
                    written += len(chunk)
        finally:
            if unregister is not None:
                unregister()
            resp.close()
        if scope is not None and scope.cancelled:
            raise OperationCancelled(f"download of {path} cancelled after {written} bytes")
        logger.debug("downloaded %d bytes from %s", written, path)
        return written

    def upload(self, path: str, reader: BinaryIO, size: int, params: Optional[Mapping[str, Any]] = None,
               content_type: str = "application/octet-stream", out: Any = None,
               scope: Optional[CancelScope] = None):
        """PUT a body of known ``size`` read from ``reader``. Never retried: the reader is consumed."""
        if size < 0:
            raise ValidationFailed("upload size must not be negative")
        url = self.url_for(path, params)
        headers = {"Content-Type": content_type, "Content-Length": str(size)}
        resp = self._send("PUT", url, scope=scope, data=_SizedReader(reader, size, scope), headers=headers)
        try:
            return self._read(resp, path, out, scope)
        finally:
            resp.close()

    # ------------------ internals ------------------

    def _request(self, method: str, path: str, *, params=None, body=None, out=None,
                 scope: Optional[CancelScope] = None, retry: bool = True):
        url = self.url_for(path, params)
        kwargs = {}
        if body is not None:
            kwargs["data"] = json.dumps(to_jsonable(body))
            kwargs["headers"] = {"Content-Type": "application/json"}

        def attempt():
            resp = self._send(method, url, scope=scope, **kwargs)
            try:
                return self._read(resp, path, out, scope)
            finally:
                resp.close()

        if not retry:
            return attempt()
        return self.retrier.call(attempt, scope=scope, description=f"{method} {path}")

    def _timeout(self, scope: Optional[CancelScope]) -> float:
        if scope is None:
            return self.timeout
        scope.check()
        left = scope.remaining(self.timeout)
        if left <= 0:
            raise DeadlineExceeded("deadline exceeded before the request was sent")
        return left

    def _send(self, method: str, url: str, *, scope: Optional[CancelScope] = None, **kwargs) -> requests.Response:
        timeout = self._timeout(scope)
        try:
            with _bound_to(scope):
                resp = self.session.request(method, url, timeout=timeout, stream=True, **kwargs)
        except requests.Timeout as exc:
            self._raise_if_aborted(scope, exc)
            raise TransportError(f"{method} {url} timed out after {timeout:.1f}s") from exc
        except requests.RequestException as exc:
            self._raise_if_aborted(scope, exc)
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        logger.debug("%s %s -> %s", method, url, resp.status_code)
        if scope is not None and scope.cancelled:
            resp.close()
            raise OperationCancelled(f"{method} {url} cancelled")
        self._raise_for_status(resp, method, url)
        return resp

    @staticmethod
    def _raise_if_aborted(scope: Optional[CancelScope], exc: Exception):
        if scope is None:
            return
        if scope.cancelled:
            raise OperationCancelled("request cancelled") from exc
        if scope.expired:
            raise DeadlineExceeded("request deadline exceeded") from exc

    @staticmethod
    def _raise_for_status(resp: requests.Response, method: str, url: str):
        status = resp.status_code
        if 200 <= status < 300:
            return
        try:
            body = resp.text
        except _STREAM_ERRORS:
            body = ""
        finally:
            resp.close()
        message = _error_message(resp, body)
        logger.debug("%s %s failed with HTTP %s: %s", method, url, status, message)
        if status == 401:
            raise AuthError(f"HTTP 401: {message}")
        if status == 404:
            raise NotFoundError(message, status_code=status, body=body)
        raise ServerError(message, status_code=status, body=body)

    def _read(self, resp: requests.Response, path: str, out: Any, scope: Optional[CancelScope]):
        unregister = scope.on_cancel(resp.close) if scope is not None else None
        try:
            content = resp.content
        except _STREAM_ERRORS as exc:
            self._raise_if_aborted(scope, exc)
            raise TransportError(f"reading response of {path} failed: {exc}") from exc
        finally:
            if unregister is not None:
                unregister()
        data = self._decode_body(resp, content, path)
        if out is None:
            return data
        return decode(out, data)

    @staticmethod
    def _decode_body(resp: requests.Response, content: bytes, path: str):
        ctype = resp.headers.get("Content-Type", "").split(";")[0].strip().lower()
        is_json = ctype == "application/json" or ctype.endswith("+json")
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError as exc:
            if is_json:
                raise DecodeError(f"response of {path} is not valid UTF-8: {exc}") from exc
            text = content.decode("utf-8", errors="replace")
        if not text.strip():
            return None
        if is_json:
            try:
                return json.loads(text)
            except ValueError as exc:
                raise DecodeError(f"invalid JSON from {path}: {exc}") from exc
        if ctype.startswith("text/"):
            return text.strip()
        try:
            return json.loads(text)
        except ValueError:
            return text.strip()
