# xoclient/session.py
import logging
import threading
from typing import Any, Callable, Optional

from requests import Session as HTTPSession

from .config import ClientConfig
from .jsonrpc import JsonRpcClient
from .rest import RestClient
from .retry import Retrier

logger = logging.getLogger(__name__)


class Session:
    """
    Shared state behind one client: config, the authentication token and both transports.

    The JSON-RPC sign-in and the REST cookie use the same token. With password
    auth the token is minted during sign-in and published here before any REST
    call can need it.
    """

    def __init__(self, config: ClientConfig, http_session: Optional[HTTPSession] = None,
                 ws_connect: Optional[Callable[..., Any]] = None, retrier: Optional[Retrier] = None):
        self.config = config
        self._token = config.token
        self._token_lock = threading.Lock()
        self.retrier = retrier or Retrier(config.retry_mode, config.retry_max_time)
        self.rest = RestClient(config, self.token, retrier=self.retrier, session=http_session)
        self.rpc = JsonRpcClient(config, retrier=self.retrier, connect=ws_connect, on_token=self.set_token)

    def token(self) -> Optional[str]:
        with self._token_lock:
            return self._token

    def set_token(self, token: str):
        with self._token_lock:
            self._token = token
        logger.debug("authentication token updated")

    def open(self):
        self.rpc.connect()

    def close(self):
        try:
            self.rpc.close()
        finally:
            self.rest.close()
