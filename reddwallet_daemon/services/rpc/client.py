"""
Daemon RPC Client

Minimal JSON-RPC 1.0 client for the local reddcoind, covering what the
supervisor needs: picking up credentials from reddcoin.conf and a
liveness probe. The wallet's full RPC surface lives elsewhere.
"""

import ipaddress
import logging
from typing import Any

import httpx

from ...common.exceptions import RpcError
from ...common.logging_setup import get_component_logger

DEFAULT_RPC_HOST = "127.0.0.1"
DEFAULT_RPC_PORT = 45443

# Transport failures are reported under this code, whatever the cause
CONNECTION_REFUSED = "ECONNREFUSED"

# RPC_WALLET_WRONG_ENC_STATE: walletlock on an unencrypted wallet
WALLET_UNENCRYPTED = -15
# RPC_IN_WARMUP: daemon is up but still loading
IN_WARMUP = -28

PROBE_METHOD = "walletlock"


def format_host(host: str) -> str:
    """Bracket IPv6 literals for use in a URL (::1 -> [::1])"""
    try:
        if ipaddress.ip_address(host).version == 6:
            return f"[{host}]"
    except ValueError:
        pass
    return host


class DaemonRpcClient:
    """JSON-RPC over HTTP with basic auth"""

    def __init__(
        self,
        timeout_s: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: logging.LoggerAdapter | None = None,
    ):
        self.timeout_s = timeout_s
        self.transport = transport
        self.logger = logger or get_component_logger("rpc")

        self.url: str | None = None
        self._auth: tuple[str, str] | None = None
        self._client: httpx.AsyncClient | None = None
        self._request_id = 0

    def initialize_config(self, config: dict[str, str]) -> None:
        """
        Take connection settings from the parsed reddcoin.conf.

        Reads rpcuser, rpcpassword, rpcport and rpcconnect.
        """
        host = config.get("rpcconnect", DEFAULT_RPC_HOST)
        try:
            port = int(config.get("rpcport", DEFAULT_RPC_PORT))
        except ValueError:
            self.logger.warning(f"Invalid rpcport {config.get('rpcport')!r}, using {DEFAULT_RPC_PORT}")
            port = DEFAULT_RPC_PORT

        self.url = f"http://{format_host(host)}:{port}/"
        self._auth = (config.get("rpcuser", ""), config.get("rpcpassword", ""))
        self.logger.debug(f"RPC endpoint set to {self.url}")

    async def call(self, method: str, *params: Any) -> Any:
        """
        Invoke an RPC method.

        Returns:
            The `result` member of the reply

        Raises:
            RpcError: transport failure (code ECONNREFUSED), error reply
                (JSON-RPC code), or unintelligible reply or any other
                failure (code None)
        """
        if self.url is None:
            raise RuntimeError("initialize_config() must be called before RPC calls")

        if self._client is None:
            self._client = httpx.AsyncClient(auth=self._auth, timeout=self.timeout_s, transport=self.transport)

        self._request_id += 1
        payload = {"jsonrpc": "1.0", "id": self._request_id, "method": method, "params": list(params)}

        try:
            response = await self._client.post(self.url, json=payload)
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            raise RpcError(CONNECTION_REFUSED, str(e)) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise RpcError(None, str(e)) from e
        except Exception as e:
            self.logger.warning(f"Unexpected error calling {method}: {e!r}")
            raise RpcError(None, f"{type(e).__name__}: {e}") from e

        # Error replies come back as HTTP 500 with a JSON body
        try:
            data = response.json()
        except ValueError:
            raise RpcError(None, f"HTTP {response.status_code} from daemon")

        if not isinstance(data, dict):
            raise RpcError(None, f"Unexpected reply: {data!r}")

        error = data.get("error")
        if error:
            if isinstance(error, dict):
                raise RpcError(error.get("code"), error.get("message", ""))
            raise RpcError(None, str(error))

        return data.get("result")

    async def probe(self) -> None:
        """Liveness probe: any call that needs the daemon up"""
        await self.call(PROBE_METHOD)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
