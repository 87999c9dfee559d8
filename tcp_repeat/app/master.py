import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional

from tcp_repeat import __version__
from tcp_repeat.core.api import APIController, APIServer
from tcp_repeat.core.config_manager import get_config_manager
from tcp_repeat.core.devices import list_interfaces
from tcp_repeat.core.engine import CatalogEngine
from tcp_repeat.core.errors import StartupError
from tcp_repeat.core.logging_config import configure_logging
from tcp_repeat.core.logging_utils import get_module_logger
from tcp_repeat.core.paths import CONFIG_PATH, DEFAULT_ETC_DIR, SERVER_LOG_FILE, DataPaths
from tcp_repeat.core.persistence import PersistenceGateway
from tcp_repeat.core.preferences import PreferencesStore
from tcp_repeat.core.replay import ReplayTool
from tcp_repeat.core.storage import CaptureFileStore


logger = get_module_logger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments with config file defaults."""
    config_manager = get_config_manager()
    config = config_manager.read_config(CONFIG_PATH)

    default_host = config_manager.get_str(config, 'host', default='0.0.0.0')
    default_port = config_manager.get_int(config, 'port', default=3003)
    default_etc_dir = Path(config_manager.get_str(config, 'etc_dir', default=str(DEFAULT_ETC_DIR)))
    default_log_level = config_manager.get_str(config, 'log_level', default='info')
    default_log_file = config_manager.get_str(config, 'log_file', default=str(SERVER_LOG_FILE))
    default_debug = config_manager.get_bool(config, 'debug', default=False)

    parser = argparse.ArgumentParser(
        description="tcp-repeat - Capture catalog and tcpreplay control server"
    )

    parser.add_argument(
        "--host",
        type=str,
        default=default_host,
        help="Address to bind to (default: 0.0.0.0)"
    )

    parser.add_argument(
        "--port",
        type=int,
        default=default_port,
        help="Port to listen on (default: 3003)"
    )

    parser.add_argument(
        "--etc-dir",
        type=Path,
        default=default_etc_dir,
        help="Directory holding preferences, pcaps.json and playlists.json (default: etc/)"
    )

    parser.add_argument(
        "--log-level",
        choices=['debug', 'info', 'warning', 'error', 'critical'],
        default=default_log_level,
        help="Logging level (default: info)"
    )

    parser.add_argument(
        "--log-file",
        type=str,
        default=default_log_file,
        help="Log file path; empty string logs to the console only"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        default=default_debug,
        help="Include tracebacks in API error responses"
    )

    return parser.parse_args(argv)


async def main(argv: Optional[list[str]] = None) -> None:
    """
    Main entry point for the tcp-repeat server.

    Startup sequence:
    1. Load preferences (missing file or unusable pcapsDir is fatal)
    2. Enumerate network interfaces and probe tcpreplay
    3. Load the catalog and playlists, re-deriving All
    4. Serve HTTP and WebSocket until SIGINT/SIGTERM
    """
    args = parse_args(argv)

    log_file = Path(args.log_file) if args.log_file else None
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
    configure_logging(args.log_level, force=True, log_file=log_file)

    logger.info("=" * 60)
    logger.info("tcp-repeat %s starting", __version__)
    logger.info("etc directory: %s", args.etc_dir.resolve())
    logger.info("=" * 60)

    paths = DataPaths(args.etc_dir)
    preferences = PreferencesStore(paths.preferences)
    preferences.load()

    interfaces = await asyncio.to_thread(list_interfaces)
    logger.info("Network interfaces: %s", ", ".join(nic.name for nic in interfaces) or "none")

    replay = ReplayTool(lambda: preferences.replay_tool_path)
    await replay.probe()

    engine = CatalogEngine.load(
        PersistenceGateway(paths),
        CaptureFileStore(lambda: preferences.captures_dir),
        default_interface=interfaces[0].name if interfaces else None,
    )
    problems = engine.invariant_violations()
    if problems:
        logger.warning("Loaded state is inconsistent: %s", "; ".join(problems))
    logger.info(
        "Loaded %d captures and %d playlists",
        len(engine.catalog),
        len(engine.playlists.names()),
    )

    controller = APIController(engine, preferences, replay, interfaces, __version__)
    server = APIServer(controller, host=args.host, port=args.port, debug=args.debug)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass  # Windows doesn't support add_signal_handler

    await server.start()
    try:
        await stop_event.wait()
    finally:
        await server.stop()

    logger.info("tcp-repeat stopped")


def run(argv: Optional[list[str]] = None) -> int:
    try:
        asyncio.run(main(argv))
        return 0
    except StartupError as exc:
        logger.error("%s", exc)
        print(f"Startup failed: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 130
    except Exception as exc:  # pragma: no cover - fatal guard
        print(f"Fatal error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(run())
