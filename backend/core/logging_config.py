"""
Logging Configuration

Centralized logging using loguru with structured output.
"""

import sys
from pathlib import Path

from loguru import logger

from config import get_settings

settings = get_settings()

# Remove default handler
logger.remove()

# Add console handler with custom format
logger.add(
    sys.stderr,
    format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>",
    level=settings.log_level,
    colorize=True,
)

# Add file handler for persistent logs
logger.add(
    str(Path(settings.log_dir) / "analytics_{time:YYYY-MM-DD}.log"),
    rotation="10 MB",
    retention="7 days",
    format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} | {message}",
    level=settings.log_level,
)

# Records logged through the bare logger still need the name field
logger.configure(extra={"name": "app"})


def get_logger(name: str):
    """Get a logger with a specific name for component identification."""
    return logger.bind(name=name)


# Pre-configured loggers for different components
data_logger = get_logger("data")
analytics_logger = get_logger("analytics")
insights_logger = get_logger("insights")
query_logger = get_logger("query")
remote_logger = get_logger("remote")
cache_logger = get_logger("cache")
api_logger = get_logger("api")
