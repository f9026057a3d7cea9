import logging
import sys


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure logging for the command line tools."""
    # Configure root logger to capture all logs
    logging.basicConfig(
        level=level,
        format="%(levelname)s - %(asctime)s - %(name)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,  # Override any existing configuration
    )

    # Set specific log levels for noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
