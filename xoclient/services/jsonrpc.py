# xoclient/services/jsonrpc.py
import logging
from typing import Any, Dict, Optional

from ..context import CancelScope
from ..errors import ServerError, XOError
from ..jsonrpc import JsonRpcClient

logger = logging.getLogger(__name__)


class JsonRpcService:
    """JSON-RPC calls with request/failure logging, for services built on the legacy API."""

    def __init__(self, rpc: JsonRpcClient):
        self.rpc = rpc

    def call(self, method: str, params: Optional[Dict[str, Any]] = None, out: Any = None,
             scope: Optional[CancelScope] = None, **log_context):
        logger.debug("JSON-RPC call %s %s", method, log_context or "")
        try:
            result = self.rpc.call(method, params, out, scope=scope)
        except XOError as exc:
            logger.error("JSON-RPC call %s failed: %s %s", method, exc, log_context or "")
            raise
        logger.debug("JSON-RPC call %s succeeded", method)
        return result

    def validate_result(self, ok: Any, operation: str, **log_context):
        if ok is not True:
            logger.warning("%s returned an unsuccessful status %s", operation, log_context or "")
            raise ServerError(f"{operation} returned an unsuccessful status")
