import logging
import sys

from loguru import logger

from agriconnect.core.config import DEFAULT_SECRET_KEY, Settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


class _InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(
        sys.stdout,
        level=level,
        format=LOG_FORMAT,
        backtrace=True,
        diagnose=False,
    )
    logging.root.handlers = [_InterceptHandler()]
    logging.root.setLevel(level)
    for name in ('uvicorn', 'uvicorn.access', 'uvicorn.error'):
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True


def _flag(value: object) -> str:
    return 'set' if value else 'missing'


def log_environment(config: Settings) -> None:
    """Report which runtime options are configured, without printing secrets."""
    logger.info("Environment check ({})", config.ENV)
    logger.info("  PORT: {}", config.PORT)
    logger.info("  DATABASE_URL: {}", config.DATABASE_URL.split('://', 1)[0])
    if config.SECRET_KEY == DEFAULT_SECRET_KEY:
        logger.warning("  SECRET_KEY: missing, signing tokens with the development fallback")
    else:
        logger.info("  SECRET_KEY: {}", _flag(config.SECRET_KEY))
    if config.HUGGINGFACE_API_KEY:
        logger.info("  HUGGINGFACE_API_KEY: set")
    else:
        logger.warning("  HUGGINGFACE_API_KEY: missing, assistant runs on canned replies")
