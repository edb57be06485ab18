"""
Daemon Configuration

Responsibilities:
- Create the daemon data directory
- Generate reddcoin.conf from the bundled template with a random RPC password
- Parse reddcoin.conf into key/value pairs
"""

from .manager import ConfigManager, DaemonConfig, generate_rpc_password, parse_config_text

__all__ = ["ConfigManager", "DaemonConfig", "generate_rpc_password", "parse_config_text"]
