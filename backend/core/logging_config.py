"""
Logging Configuration

Centralized logging using loguru with structured output.
"""

import sys
from loguru import logger

# Remove default handler
logger.remove()

# Console handler
logger.add(
    sys.stderr,
    format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[component]}</cyan> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>",
    level="DEBUG",
    colorize=True,
)

# File handler for persistent logs
logger.add(
    "logs/dataviz_{time:YYYY-MM-DD}.log",
    rotation="10 MB",
    retention="7 days",
    format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[component]} | {name}:{function}:{line} | {message}",
    level="DEBUG",
)

logger.configure(extra={"component": "app"})


def get_logger(component: str):
    """Get a logger bound to a component name."""
    return logger.bind(component=component)


# Pre-configured loggers for different components
upload_logger = get_logger("upload")
data_logger = get_logger("data")
chart_logger = get_logger("charts")
metrics_logger = get_logger("metrics")
export_logger = get_logger("export")
llm_logger = get_logger("llm")
