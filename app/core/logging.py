import logging
from loguru import logger

from app.core.config import settings


# Remove existing handlers
for handler in logging.root.handlers[:]:
    logging.root.removeHandler(handler)


class InterceptHandler(logging.Handler):
    """Routes std-lib records (uvicorn, sqlalchemy, apscheduler) into loguru."""

    def emit(self, record):
        # Get corresponding Loguru level
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller to get correct stack depth
        frame, depth = logging.currentframe(), 2
        while frame.f_back and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging():
    # Intercept standard logging
    logging.basicConfig(handlers=[InterceptHandler()], level=logging.INFO)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logger.add(
        settings.log_file,
        rotation="500 MB",
        compression="zip",
        level=settings.log_level,
        backtrace=True,
        diagnose=settings.debug,
    )
