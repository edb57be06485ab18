"""
Daemon RPC

Responsibilities:
- Configure the JSON-RPC endpoint from reddcoin.conf
- Liveness probe used by the health poller
"""

from .client import CONNECTION_REFUSED, WALLET_UNENCRYPTED, DaemonRpcClient

__all__ = ["CONNECTION_REFUSED", "WALLET_UNENCRYPTED", "DaemonRpcClient"]
