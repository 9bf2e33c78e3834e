import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Install one console handler on the ``chatroom`` logger namespace."""
    global _configured
    logger = logging.getLogger("chatroom")
    logger.setLevel(level.upper())
    if _configured:
        return

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(console)
    logger.propagate = False
    _configured = True
