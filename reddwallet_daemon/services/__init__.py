"""
Daemon Supervisor Services

Components of the local daemon bootstrap, leaves first:
1. Platform - Binary resolution, data directory, chmod
2. Config - reddcoin.conf generation and parsing
3. Process - Spawn, PID record, termination
4. Notifications - Classify daemon output into events
5. RPC - Liveness probe against the daemon
6. Health - Readiness polling and block heartbeat
"""
