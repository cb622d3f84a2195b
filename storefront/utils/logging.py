"""
Logging configuration for the storefront service.

One "storefront" logger writes to stdout; modules get children of it via get_logger().
"""
import logging
import sys

from storefront.utils.settings import LOG_LEVEL

logger = logging.getLogger("storefront")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

# avoid duplicate lines through the root logger
logger.propagate = False


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: module name; "storefront.services.cart_service" and "cart_service"
            both end up under the storefront logger.
    """
    if not name:
        return logger
    if name == "storefront" or name.startswith("storefront."):
        return logging.getLogger(name)
    return logging.getLogger(f"storefront.{name}")
