"""Main application entry point for VoiceDash."""

import sys
import time
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.live import Live

from voicedash import __version__
from voicedash.services.listening_session import ListeningSession
from voicedash.ui.dashboard_screen import DashboardScreen

from .config import VoiceDashConfig

logger = logging.getLogger(__name__)

REFRESH_SECONDS = 0.1


class Server:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        # Load configuration
        self.config = VoiceDashConfig(config_path)
        # Set up logging (command line overrides config)
        level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, level)
        self.session: Optional[ListeningSession] = None
        self.screen = DashboardScreen()
        self.console = Console()

    def init(self):
        logger.info("Initializing services...")
        self.session = ListeningSession.from_config(self.config)
        logger.info(f"Distinguished speaker: {self.config.get_distinguished_speaker()}")

    async def run(self, duration: int):
        await self.session.start()
        try:
            deadline = time.monotonic() + duration if duration else None
            with Live(self.screen.render(self.session.snapshot()),
                      console=self.console,
                      refresh_per_second=int(1 / REFRESH_SECONDS)) as live:
                while deadline is None or time.monotonic() < deadline:
                    await asyncio.sleep(REFRESH_SECONDS)
                    live.update(self.screen.render(self.session.snapshot()))
        finally:
            await self.cleanup()

    async def cleanup(self):
        if self.session:
            await self.session.stop()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/voicedash.log')
    console_output = config.get('logging.console_output', True)

    # Create logs directory if it doesn't exist
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Keep the live dashboard readable
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger = logging.getLogger(__name__)
    logger.info("=" * 50)
    logger.info("VoiceDash application starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for VoiceDash application."""
    parser = argparse.ArgumentParser(
        description="VoiceDash - live speaker levels and diarized transcript",
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: looks for voicedash.yaml)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, else INFO)"
    )

    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Seconds to listen before stopping; 0 listens until Ctrl+C (default: 0)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"VoiceDash v{__version__}"
    )

    args = parser.parse_args()

    try:
        server = Server(args.config, args.log_level)
        server.init()
        asyncio.run(server.run(args.duration))
    except KeyboardInterrupt:
        print("\nGoodbye!")
    except Exception as e:
        print(f"Error: {e}")
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
