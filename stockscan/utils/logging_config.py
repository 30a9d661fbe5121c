import logging
import os
from datetime import datetime
from stockscan.config.settings import PathConfig

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# third-party loggers capped at WARNING
NOISY_LOGGERS = ("urllib3", "PIL", "backoff")


def setup_logging(level=None, log_to_file=True):
    """Configure logging for the scan station.

    ``level`` falls back to the STOCKSCAN_LOG_LEVEL environment variable, then INFO.
    """
    if level is None:
        level = getattr(logging, os.getenv("STOCKSCAN_LOG_LEVEL", "INFO").upper(), logging.INFO)

    handlers = [logging.StreamHandler()]
    if log_to_file:
        os.makedirs(PathConfig.LOG_DIR, exist_ok=True)
        station_log = os.path.join(
            PathConfig.LOG_DIR,
            f'stockscan_{datetime.now().strftime("%Y%m%d")}.log'
        )
        handlers.append(logging.FileHandler(station_log))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return logging.getLogger(__name__)
