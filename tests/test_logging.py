import logging

from loguru import logger

from agriconnect.core.config import Settings
from agriconnect.core.logging import configure_logging, log_environment


def test_configure_logging_sets_intercept_handler():
    configure_logging("INFO")
    assert logging.root.handlers, "expected root handlers to be configured"
    handler = logging.root.handlers[0]
    assert handler.__class__.__name__ == "_InterceptHandler"
    assert logging.root.level == logging.INFO


def test_log_environment_never_prints_secrets():
    lines: list[str] = []
    sink_id = logger.add(lines.append, format="{message}")
    try:
        log_environment(Settings(_env_file=None, SECRET_KEY='top-secret', HUGGINGFACE_API_KEY='hf_abc'))
    finally:
        logger.remove(sink_id)
    out = ''.join(lines)
    assert 'SECRET_KEY: set' in out
    assert 'HUGGINGFACE_API_KEY: set' in out
    assert 'top-secret' not in out
    assert 'hf_abc' not in out
