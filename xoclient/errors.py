# xoclient/errors.py
from typing import Any, Optional


class XOError(Exception):
    """Base class for every error raised by the client.

    ``kind`` names the failure category so callers can branch on it
    without importing every subclass:

        try:
            client.vm().start(vm_id)
        except XOError as exc:
            if exc.kind == "not-found":
                ...
    """

    kind = "xo"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    @property
    def is_retryable(self) -> bool:
        return False


class ConfigError(XOError):
    kind = "config"


class AuthError(XOError):
    kind = "auth"


class TransportError(XOError):
    kind = "transport"

    @property
    def is_retryable(self) -> bool:
        return True


class ServerError(XOError):
    """Error reported by the server: a non-2xx REST reply or a JSON-RPC error object."""

    kind = "server"

    def __init__(self, message: str = "", status_code: Optional[int] = None,
                 code: Any = None, body: Optional[str] = None, data: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.body = body
        self.data = data

    @property
    def is_retryable(self) -> bool:
        if self.status_code is None:
            return False
        return self.status_code >= 500 or self.status_code == 429

    def __str__(self):
        if self.status_code is not None:
            return f"HTTP {self.status_code}: {self.message}"
        if self.code is not None:
            return f"[{self.code}] {self.message}"
        return self.message


class NotFoundError(ServerError):
    kind = "not-found"


class DecodeError(XOError):
    kind = "decode"


class OperationCancelled(XOError):
    kind = "cancelled"


class DeadlineExceeded(XOError):
    kind = "timeout"


class ValidationFailed(XOError):
    kind = "validation"


class InvariantError(XOError):
    kind = "invariant"
