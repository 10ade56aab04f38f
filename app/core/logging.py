import logging
import sys

from app.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Install a single stdout handler on the root logger.

    Safe to call more than once; later calls only adjust the level.
    """
    global _configured
    chosen = (level or get_settings().log_level or "INFO").upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, chosen, logging.INFO))
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, "%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
    # httpx logs every request at INFO; the LLM client logs its own summary line.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True
