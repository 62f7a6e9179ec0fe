import sys
from typing import Optional

from loguru import logger

from ..config import settings


def configure_logging(level: Optional[str] = None) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=(level or settings.log_level).upper(),
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | {name}:{line} - {message}",
    )
