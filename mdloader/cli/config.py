import logging
import sys

LOG_FORMAT = "{asctime:^} | {levelname: ^8} | {name: <28} | {message}"
DATE_FORMAT = "%d.%m.%Y %H:%M:%S"
# HTTP libraries log every connection at DEBUG; keep them quiet even with --verbose.
NOISY_LOGGERS = ("requests", "urllib3", "asyncio")


def setup_logging(level: int = logging.INFO):
    """
    Configure logging for the CLI process.

    Replaces any handlers already on the root logger with one stdout handler,
    so ``--verbose`` or ``--json`` can reconfigure after the default setup.

    Parameters:
        level (int): Logging level applied to the root logger.
    """
    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.basicConfig(
        handlers=[logging.StreamHandler(sys.stdout)],
        format=LOG_FORMAT,
        style="{",
        datefmt=DATE_FORMAT,
        level=level,
        force=True,
    )

