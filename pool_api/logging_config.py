"""
Logging configuration for pool_api.
Supports normal mode (concise) and debug mode (verbose with file output).
"""
import logging
import os
import sys
from pathlib import Path

# Debug mode: set LEDGER_DEBUG=1 to enable verbose decoder/ledger logging
LEDGER_DEBUG = os.getenv('LEDGER_DEBUG', '').lower() in ('1', 'true', 'yes')

# Debug log file path
DEBUG_LOG_PATH = Path(os.getenv('LEDGER_DEBUG_LOG', 'ledger_debug.log'))

DEBUG_HANDLER_NAME = 'ledger_debug_file'


class ConciseFormatter(logging.Formatter):
    """Single-line, concise log format."""

    FORMATS = {
        logging.DEBUG: "\033[90m[D]\033[0m %(name)s: %(message)s",
        logging.INFO: "\033[32m[I]\033[0m %(message)s",
        logging.WARNING: "\033[33m[W]\033[0m %(message)s",
        logging.ERROR: "\033[31m[E]\033[0m %(name)s: %(message)s",
        logging.CRITICAL: "\033[31;1m[!]\033[0m %(name)s: %(message)s",
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno, self.FORMATS[logging.INFO])
        return logging.Formatter(log_fmt).format(record)


class VerboseFormatter(logging.Formatter):
    """Detailed format for debug file logging."""
    def __init__(self):
        super().__init__(
            fmt='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


def setup_logging(level=logging.INFO, stream=None):
    """
    Configure logging for the whole process.
    Call this once at startup (the CLI does).

    Set LEDGER_DEBUG=1 to write verbose decoder and ledger logs to file.
    """
    # Silence noisy third-party loggers
    for logger_name in ('urllib3', 'websockets', 'asyncio', 'web3', 'web3.providers', 'web3.RequestManager'):
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    # Console output goes to stderr so JSON on stdout stays clean
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(ConciseFormatter())
    root.addHandler(handler)

    app_logger = logging.getLogger('pool_api')
    app_logger.setLevel(level)

    if LEDGER_DEBUG:
        setup_ledger_debug_logging()
        app_logger.info(f"LEDGER_DEBUG enabled - verbose logs written to {DEBUG_LOG_PATH}")

    return app_logger


def setup_ledger_debug_logging(log_path: Path = None):
    """
    Attach a verbose file handler to the services package.
    Child loggers (decoders, list reader, assembler) propagate into it.
    """
    log_path = log_path or DEBUG_LOG_PATH
    parent_logger = logging.getLogger('pool_api.services')
    parent_logger.setLevel(logging.DEBUG)
    if any(getattr(h, 'name', None) == DEBUG_HANDLER_NAME for h in parent_logger.handlers):
        return parent_logger

    file_handler = logging.FileHandler(log_path, mode='w', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(VerboseFormatter())
    file_handler.name = DEBUG_HANDLER_NAME
    parent_logger.addHandler(file_handler)
    return parent_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the package namespace. Use: logger = get_logger(__name__)"""
    if name.startswith('pool_api'):
        return logging.getLogger(name)
    return logging.getLogger(f'pool_api.{name}')
