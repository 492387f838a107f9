import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stdout)
    # aiohttp access chatter is not useful next to our own request logging
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
