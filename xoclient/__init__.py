# xoclient/__init__.py
from .client import XOClient
from .codec import Selection
from .config import ClientConfig
from .context import CancelScope
from .errors import (AuthError, ConfigError, DeadlineExceeded, DecodeError, InvariantError, NotFoundError,
                     OperationCancelled, ServerError, TransportError, ValidationFailed, XOError)
from .retry import RetryMode

__all__ = [
    "XOClient", "ClientConfig", "CancelScope", "RetryMode", "Selection",
    "XOError", "AuthError", "ConfigError", "DeadlineExceeded", "DecodeError", "InvariantError", "NotFoundError",
    "OperationCancelled", "ServerError", "TransportError", "ValidationFailed",
]
