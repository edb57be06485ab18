"""
ReddWallet Daemon Supervisor

Starts and supervises the reddcoind daemon bundled with the ReddWallet
desktop application.
"""

__version__ = "1.0.0"
