#!/usr/bin/env python3
"""
ReddWallet Daemon Supervisor - Entry Point

Bootstraps the bundled reddcoind and keeps the session alive until the
user stops it:
- Resolve the daemon binary for this platform
- Create and parse reddcoin.conf
- Stop a daemon left over from an earlier session
- Spawn the daemon, wait for its RPC to answer
- Emit block notifications until shutdown

Usage:
    reddwallet-daemon                    # Start with default settings
    reddwallet-daemon --config my.yaml   # Use custom settings file
    reddwallet-daemon --dry-run          # Print resolved paths and exit
    reddwallet-daemon --verbose          # Enable debug logging

The exit status is the bootstrap result code (0 when the daemon was ready).
"""

import argparse
import asyncio
import signal
import sys

from . import __version__
from .bootstrap import BootstrapController
from .common.config import CONFIG_FILENAME, PID_FILENAME, DaemonSettings, find_settings_path, load_settings
from .common.events import DaemonEvent, Event
from .common.exceptions import PlatformUnsupportedError
from .common.logging_setup import get_component_logger, set_debug
from .common.result import ResultCode


def print_startup_banner(settings: DaemonSettings, settings_path: str) -> None:
    """Print startup information."""
    print()
    print("=" * 60)
    print(f"  REDDWALLET DAEMON SUPERVISOR v{__version__}")
    print("=" * 60)
    print()
    print(f"  Settings:        {settings_path}")
    print(f"  Daemon dir:      {settings.directory}")
    print(f"  Binaries dir:    {settings.binaries_dir}")
    print(f"  Probe interval:  {settings.probe_interval_s}s")
    print(f"  Heartbeat:       {settings.poll_interval_s}s")
    print()
    print("=" * 60)
    print()


def print_paths(controller: BootstrapController) -> int:
    """
    Print what a bootstrap would use, without touching anything.

    Returns:
        Result code: 0, or 1 if this platform has no daemon binary
    """
    resolver = controller.resolver
    print(f"Platform:    {resolver.platform_label}")

    try:
        binary = resolver.resolve_path()
    except PlatformUnsupportedError as e:
        print(f"Binary:      none ({e.message})")
        return ResultCode.PLATFORM_UNSUPPORTED

    daemon_dir = controller.daemon_dir
    print(f"Binary:      {binary} ({'found' if binary.exists() else 'MISSING'})")
    print(f"Template:    {controller.settings.template_path}")
    print(f"Config file: {daemon_dir / CONFIG_FILENAME}")
    print(f"PID file:    {daemon_dir / PID_FILENAME}")
    return ResultCode.READY


def interrupted_code(controller: BootstrapController) -> int:
    """Exit status after Ctrl+C: the delivered result, or a daemon error if there was none yet"""
    result = controller.result_channel.result
    if result is None:
        return ResultCode.DAEMON_ERROR
    return result.code


async def main_async(settings: DaemonSettings, controller: BootstrapController | None = None) -> int:
    """
    Bootstrap the daemon and hold the session until SIGINT/SIGTERM.

    Returns:
        The bootstrap result code
    """
    logger = get_component_logger("main")
    logger.info("Starting ReddWallet daemon supervisor")

    controller = controller or BootstrapController(settings)
    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, shutdown_event.set)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    def on_exited(event: Event) -> None:
        if controller.result_channel.done:
            logger.warning(f"Daemon exited (code {event.payload}), ending session")
            shutdown_event.set()

    controller.events.subscribe(DaemonEvent.EXITED, on_exited)

    bootstrap_task = asyncio.create_task(controller.start_local())
    shutdown_task = asyncio.create_task(shutdown_event.wait())

    try:
        await asyncio.wait({bootstrap_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)

        if not bootstrap_task.done():
            logger.info("Interrupted before the daemon was ready")
            bootstrap_task.cancel()
            try:
                await bootstrap_task
            except asyncio.CancelledError:
                pass
            return ResultCode.DAEMON_ERROR

        result = bootstrap_task.result()
        print(f"{'OK' if result.success else 'FAILED'} [{result.code}]: {result.message}")

        if result.success:
            print("Press Ctrl+C to stop")
            await shutdown_event.wait()

        return result.code
    finally:
        shutdown_task.cancel()
        returncode = await controller.shutdown()
        logger.info(f"Supervisor stopped (daemon exit code: {returncode})")


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="ReddWallet Daemon Supervisor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    reddwallet-daemon                    # Start with default settings
    reddwallet-daemon --config my.yaml   # Use custom settings file
    reddwallet-daemon --dry-run          # Print resolved paths and exit
    reddwallet-daemon -v                 # Enable debug logging

Exit status:
    0 ready, 1 unsupported platform, 2 daemon error, 4 configuration error
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to settings file (default: $REDDWALLET_DAEMON_CONFIG or ./config.yaml)"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the resolved binary and file paths and exit without starting"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (debug) logging"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"ReddWallet Daemon Supervisor v{__version__}"
    )

    args = parser.parse_args()

    settings = load_settings(args.config)
    set_debug(settings.debug or args.verbose)

    print_startup_banner(settings, str(find_settings_path(args.config)))

    if args.dry_run:
        print("Dry run mode - nothing will be started")
        sys.exit(print_paths(BootstrapController(settings)))

    controller = BootstrapController(settings)
    try:
        code = asyncio.run(main_async(settings, controller))
    except KeyboardInterrupt:
        print("\nStopped by user")
        code = interrupted_code(controller)
    except Exception as e:
        print(f"\nFatal error: {e}")
        sys.exit(1)

    sys.exit(int(code))


if __name__ == "__main__":
    main()
