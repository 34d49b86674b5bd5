# main.py
import argparse
import asyncio
import logging
import signal
import sys

from xshare.config_manager import ConfigManager
from xshare.gateway import SessionGateway
from xshare.matchmaking import MatchmakingService

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s", stream=sys.stdout)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="xshare matchmaking server")
    parser.add_argument("--config", help="Path to a JSON config file")
    parser.add_argument("--host", help="Interface to listen on")
    parser.add_argument("--port", type=int, help="Port to listen on")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")
    return parser.parse_args(argv)


async def main(argv=None):
    args = parse_args(argv)

    config_manager = ConfigManager(args.config)
    config_manager.load()
    config_manager.update(host=args.host, port=args.port, log_level=args.log_level)
    logging.getLogger().setLevel(config_manager.get_log_level())

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown_event.set)
        except NotImplementedError:
            # Windows event loops do not support signal handlers; Ctrl+C still raises KeyboardInterrupt.
            pass

    service = MatchmakingService(pair_timeout=config_manager.get_pair_timeout())
    gateway = SessionGateway(
        service,
        host=config_manager.get_host(),
        port=config_manager.get_port(),
        **config_manager.get_server_options(),
    )

    try:
        await gateway.start()
        await shutdown_event.wait()
    except OSError as e:
        logging.critical(f"Failed to start WebSocket server: {e}")
    finally:
        logging.info("Shutdown initiated...")
        await gateway.stop()
        service.shutdown()
        logging.info("Application fully shut down.")


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logging.info("Shutdown initiated by user (Ctrl+C)...")


if __name__ == "__main__":
    run()
