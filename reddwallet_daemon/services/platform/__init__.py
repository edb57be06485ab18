"""
Platform Resolution

Responsibilities:
- Map OS + architecture to the shipped daemon binary
- Locate the per-user data directory
- Make the binary executable on *nix
"""

from .resolver import PlatformResolver, ensure_executable, get_app_data_dir, resolve_daemon_dir

__all__ = ["PlatformResolver", "ensure_executable", "get_app_data_dir", "resolve_daemon_dir"]
