# infrastructure/logging/log_setup.py
import sys

from loguru import logger

CONSOLE_FORMAT = "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <7}</level> | {message}"


def setup_console_logging(level: str = "WARNING") -> None:
    logger.remove()
    # sys.stderr は呼び出し時に解決する（stdout は本文出力に使うことがある）
    logger.add(lambda msg: print(msg, end="", file=sys.stderr), level=level.upper(), format=CONSOLE_FORMAT)
