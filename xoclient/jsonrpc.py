# xoclient/jsonrpc.py
import itertools
import json
import logging
import ssl
import threading
import weakref
from typing import Any, Callable, Dict, Optional

from websockets.exceptions import WebSocketException
from websockets.sync.client import connect as ws_connect

from .codec import decode, to_jsonable
from .config import ClientConfig
from .context import CancelScope
from .errors import (AuthError, DeadlineExceeded, OperationCancelled, ServerError, TransportError,
                     XOError)
from .retry import Retrier

logger = logging.getLogger(__name__)

OPEN_TIMEOUT = 10.0
READER_JOIN_TIMEOUT = 2.0

NotificationHook = Callable[[str, Any], None]


def default_connect(url: str, *, ssl_context: Optional[ssl.SSLContext] = None,
                    open_timeout: float = OPEN_TIMEOUT):
    # getAllObjects replies can be many megabytes
    return ws_connect(url, ssl=ssl_context, open_timeout=open_timeout, max_size=None)


class _PendingCall:
    __slots__ = ("id", "method", "conn", "_done", "result", "error")

    def __init__(self, call_id: int, method: str, conn):
        self.id = call_id
        self.method = method
        self.conn = conn
        self._done = threading.Event()
        self.result = None
        self.error: Optional[XOError] = None

    def resolve(self, result: Any = None, error: Optional[XOError] = None):
        if self._done.is_set():
            return
        self.result = result
        self.error = error
        self._done.set()

    def wait(self, timeout: Optional[float]) -> bool:
        return self._done.wait(timeout)


class JsonRpcClient:
    """
    JSON-RPC 2.0 client over a WebSocket to <url>/api/.

    One reader thread per connection routes responses to waiting callers by id;
    sends are serialized. After a disconnect the next call reconnects and signs
    in again (one reconnect at a time, other callers wait for its outcome).

        rpc = JsonRpcClient(config)
        rpc.connect()
        pools = rpc.call("xo.getAllObjects", {"filter": {"type": "pool"}})
    """

    def __init__(self, config: ClientConfig, retrier: Optional[Retrier] = None,
                 connect: Optional[Callable[..., Any]] = None,
                 on_notification: Optional[NotificationHook] = None,
                 on_token: Optional[Callable[[str], None]] = None):
        self.url = config.websocket_url
        self.config = config
        self.call_timeout = config.call_timeout
        self.retrier = retrier or Retrier(config.retry_mode, config.retry_max_time)
        self._connect = connect or default_connect
        self._on_notification = on_notification
        self._on_token = on_token

        self._ids = itertools.count(1)
        self._pending: Dict[int, _PendingCall] = {}
        self._lock = threading.Lock()
        self._send_lock = threading.Lock()
        self._reconnect_lock = threading.Lock()
        self._reconnects = 0
        self._reconnect_error: Optional[XOError] = None
        self._dead = weakref.WeakSet()
        self._readers: "weakref.WeakKeyDictionary[Any, threading.Thread]" = weakref.WeakKeyDictionary()
        self._ws = None
        self._closed = False
        self._token = config.token
        self.user = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def token(self) -> Optional[str]:
        return self._token

    def set_notification_hook(self, hook: Optional[NotificationHook]):
        self._on_notification = hook

    # ------------------ connection lifecycle ------------------

    def connect(self, scope: Optional[CancelScope] = None):
        """Dial and sign in. An authentication failure closes the client."""
        try:
            self.ensure_connected(scope)
        except AuthError:
            self.close()
            raise

    def ensure_connected(self, scope: Optional[CancelScope] = None):
        if self._closed:
            raise OperationCancelled("JSON-RPC client is closed")
        if self._ws is not None:
            return
        seen = self._reconnects
        with self._reconnect_lock:
            if self._ws is not None:
                return
            if self._reconnects != seen and self._reconnect_error is not None:
                # another caller's reconnect just failed; report that instead of dialing again
                failed = self._reconnect_error
                raise type(failed)(failed.message) from failed
            try:
                self._open(scope)
                self._reconnect_error = None
            except XOError as exc:
                self._reconnect_error = exc
                raise
            finally:
                self._reconnects += 1

    def close(self):
        with self._lock:
            if self._closed:
                return
            self._closed = True
            ws, self._ws = self._ws, None
            pending = list(self._pending.values())
            self._pending.clear()
        for call in pending:
            call.resolve(error=OperationCancelled(f"{call.method} cancelled: client closed"))
        if ws is not None:
            self._discard(ws)
        logger.info("JSON-RPC client for %s closed", self.url)

    def _ssl_context(self) -> Optional[ssl.SSLContext]:
        if not self.url.startswith("wss://"):
            return None
        ctx = ssl.create_default_context()
        if self.config.insecure:
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
        return ctx

    def _open(self, scope: Optional[CancelScope]):
        logger.info("connecting to %s", self.url)
        try:
            ws = self._connect(self.url, ssl_context=self._ssl_context(), open_timeout=OPEN_TIMEOUT)
        except (WebSocketException, OSError) as exc:
            raise TransportError(f"cannot connect to {self.url}: {exc}") from exc
        reader = threading.Thread(target=self._read_loop, args=(ws,), name="xo-jsonrpc-reader", daemon=True)
        self._readers[ws] = reader
        reader.start()
        try:
            self._sign_in(ws, scope)
        except XOError:
            self._discard(ws)
            raise
        with self._lock:
            closed = self._closed
            if not closed:
                self._ws = ws
        if closed:
            self._discard(ws)
            raise OperationCancelled("JSON-RPC client closed while connecting")
        logger.info("signed in to %s", self.url)

    def _sign_in(self, ws, scope: Optional[CancelScope]):
        if self._token:
            params = {"token": self._token}
        else:
            params = {"email": self.config.user, "password": self.config.password}
        try:
            self.user = self._roundtrip(ws, "session.signIn", params, None, scope)
        except ServerError as exc:
            raise AuthError(f"sign-in failed: {exc.message}") from exc
        if self._token:
            return
        try:
            token = self._roundtrip(ws, "token.create", {}, None, scope)
        except ServerError as exc:
            raise AuthError(f"could not create an authentication token: {exc.message}") from exc
        if not isinstance(token, str) or not token:
            raise AuthError("server did not return an authentication token")
        self._token = token
        if self._on_token is not None:
            self._on_token(token)

    def _discard(self, ws):
        try:
            ws.close()
        except (WebSocketException, OSError) as exc:
            logger.debug("error closing websocket: %s", exc)
        reader = self._readers.pop(ws, None)
        if reader is None or reader is threading.current_thread():
            return
        reader.join(READER_JOIN_TIMEOUT)
        if reader.is_alive():
            logger.warning("JSON-RPC reader for %s still running after close", self.url)

    # ------------------ reader ------------------

    def _read_loop(self, ws):
        reason: Any = "connection closed"
        try:
            while True:
                self._dispatch(ws.recv())
        except (WebSocketException, OSError) as exc:
            reason = exc
        finally:
            self._connection_lost(ws, reason)

    def _dispatch(self, raw):
        try:
            msg = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("dropping malformed JSON-RPC frame")
            return
        if not isinstance(msg, dict):
            logger.warning("dropping non-object JSON-RPC frame")
            return

        call_id = msg.get("id")
        if call_id is not None and ("result" in msg or "error" in msg):
            with self._lock:
                call = self._pending.pop(call_id, None)
            if call is None:
                logger.debug("dropping response for unknown id %s", call_id)
                return
            error = msg.get("error")
            if error is not None:
                if not isinstance(error, dict):
                    error = {"message": str(error)}
                call.resolve(error=ServerError(str(error.get("message", "")), code=error.get("code"),
                                               data=error.get("data")))
            else:
                call.resolve(result=msg.get("result"))
            return

        method = msg.get("method")
        if method and self._on_notification is not None:
            try:
                self._on_notification(method, msg.get("params"))
            except Exception:
                logger.exception("notification hook failed for %s", method)
        else:
            logger.debug("dropping notification %s", method)

    def _connection_lost(self, ws, reason):
        with self._lock:
            self._dead.add(ws)
            if self._ws is ws:
                self._ws = None
            lost = [c for c in self._pending.values() if c.conn is ws]
            for call in lost:
                del self._pending[call.id]
            closing = self._closed
        for call in lost:
            call.resolve(error=TransportError(f"connection lost during {call.method}: {reason}"))
        if not closing:
            logger.warning("JSON-RPC connection to %s lost: %s", self.url, reason)

    # ------------------ calls ------------------

    def call(self, method: str, params: Optional[Dict[str, Any]] = None, out: Any = None, *,
             timeout: Optional[float] = None, scope: Optional[CancelScope] = None):
        """
        Call ``method`` and return its result, decoded into ``out`` when given.
        The deadline is the tighter of the scope's and ``timeout`` (default: call_timeout).
        """
        result = self.retrier.call(
            lambda: self._call_once(method, params, timeout, scope),
            scope=scope,
            before_attempt=lambda: self.ensure_connected(scope),
            description=f"JSON-RPC {method}",
        )
        if out is None:
            return result
        return decode(out, result)

    def _call_once(self, method, params, timeout, scope):
        ws = self._ws
        if ws is None:
            raise TransportError(f"not connected to {self.url}")
        return self._roundtrip(ws, method, params, timeout, scope)

    def _roundtrip(self, ws, method: str, params: Optional[Dict[str, Any]], timeout: Optional[float],
                   scope: Optional[CancelScope]):
        call_id = next(self._ids)
        call = _PendingCall(call_id, method, ws)
        frame = json.dumps({"jsonrpc": "2.0", "id": call_id, "method": method,
                            "params": to_jsonable(params or {})})
        with self._lock:
            if self._closed:
                raise OperationCancelled(f"{method} cancelled: client closed")
            if ws in self._dead:
                raise TransportError(f"connection lost before {method} was sent")
            self._pending[call_id] = call

        unregister = None
        if scope is not None:
            unregister = scope.on_cancel(lambda: call.resolve(error=OperationCancelled(f"{method} cancelled")))
        try:
            try:
                with self._send_lock:
                    ws.send(frame)
            except (WebSocketException, OSError) as exc:
                raise TransportError(f"sending {method} failed: {exc}") from exc
            logger.debug("-> %s #%d", method, call_id)

            wait = self.call_timeout if timeout is None else timeout
            if scope is not None:
                wait = scope.remaining(wait)
            if not call.wait(wait):
                raise DeadlineExceeded(f"{method} got no reply within {wait:.1f}s")
        finally:
            if unregister is not None:
                unregister()
            with self._lock:
                self._pending.pop(call_id, None)

        if call.error is not None:
            raise call.error
        return call.result
