#!/usr/bin/env python3
"""
Logging Configuration for the dispatch engine
Provides the process-wide logging sink used for matching and notification events
"""

import os
import logging
import logging.handlers
from datetime import datetime
from typing import List

from infrastructure.constants import ENGINE_LOGGER_NAMES

# Read production mode setting
PRODUCTION_MODE = os.getenv('PRODUCTION_MODE', 'true').lower() == 'true'

# Define the log directory to be a fixed 'latest_log'
LOG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'logs', 'latest_log')

# Handlers installed by setup_logging(); removed again by shutdown_logging()
_installed_handlers: List[logging.Handler] = []


def setup_logging(log_dir: str = LOG_DIR, production_mode: bool = PRODUCTION_MODE) -> None:
    """
    Install console and rotating file handlers on the root logger.

    Calling this twice is a no-op until shutdown_logging() runs, so hosts and
    scripts can both call it safely.
    """
    if _installed_handlers:
        return

    os.makedirs(log_dir, exist_ok=True)

    main_log_file = os.path.join(log_dir, 'dispatch.log')
    debug_log_file = os.path.join(log_dir, 'dispatch_debug.log')
    error_log_file = os.path.join(log_dir, 'dispatch_errors.log')
    engine_log_file = os.path.join(log_dir, 'dispatch_engine.log')

    root_logger = logging.getLogger()
    if production_mode:
        root_logger.setLevel(logging.WARNING)  # Only warnings and errors in production
    else:
        root_logger.setLevel(logging.DEBUG)    # Full debug in development

    # Detailed formatter with file, line, and function information
    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d in %(funcName)s()] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Console formatter (less detailed for readability)
    console_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING if production_mode else logging.INFO)
    console_handler.setFormatter(console_formatter)
    _install(root_logger, console_handler)

    main_file_handler = logging.handlers.RotatingFileHandler(
        main_log_file,
        maxBytes=10*1024*1024,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    main_file_handler.setLevel(logging.WARNING if production_mode else logging.INFO)
    main_file_handler.setFormatter(detailed_formatter)
    _install(root_logger, main_file_handler)

    # Debug log file handler - only enabled in development mode
    if not production_mode:
        debug_file_handler = logging.handlers.RotatingFileHandler(
            debug_log_file,
            maxBytes=50*1024*1024,  # 50MB
            backupCount=3,
            encoding='utf-8'
        )
        debug_file_handler.setLevel(logging.DEBUG)
        debug_file_handler.setFormatter(detailed_formatter)
        _install(root_logger, debug_file_handler)

    error_file_handler = logging.handlers.RotatingFileHandler(
        error_log_file,
        maxBytes=5*1024*1024,  # 5MB
        backupCount=5,
        encoding='utf-8'
    )
    error_file_handler.setLevel(logging.ERROR)
    error_file_handler.setFormatter(detailed_formatter)
    _install(root_logger, error_file_handler)

    # Dedicated engine log: match events, dispatch outcomes, booking transitions
    engine_handler = logging.handlers.RotatingFileHandler(
        engine_log_file,
        maxBytes=20*1024*1024,  # 20MB
        backupCount=5,
        encoding='utf-8'
    )
    engine_handler.setLevel(logging.INFO if production_mode else logging.DEBUG)
    engine_handler.setFormatter(detailed_formatter)

    for name in ENGINE_LOGGER_NAMES:
        engine_logger = logging.getLogger(name)
        _install(engine_logger, engine_handler)
        engine_logger.setLevel(logging.INFO if production_mode else logging.DEBUG)

    # Reduce noise from external libraries
    logging.getLogger('asyncio').setLevel(logging.WARNING)

    root_logger.info("="*80)
    root_logger.info(f"Dispatch Engine Logging Initialized - {datetime.now()}")
    root_logger.info(f"Production Mode: {'ON' if production_mode else 'OFF'}")
    root_logger.info(f"Main log: {main_log_file}")
    root_logger.info(f"Engine log: {engine_log_file}")
    root_logger.info("="*80)


def shutdown_logging() -> None:
    """Flush, close and detach every handler installed by setup_logging()."""
    while _installed_handlers:
        handler = _installed_handlers.pop()
        for logger in _loggers_with(handler):
            logger.removeHandler(handler)
        handler.flush()
        handler.close()


def _install(logger: logging.Logger, handler: logging.Handler) -> None:
    logger.addHandler(handler)
    if handler not in _installed_handlers:
        _installed_handlers.append(handler)


def _loggers_with(handler: logging.Handler) -> List[logging.Logger]:
    loggers = [logging.getLogger()]
    loggers.extend(logging.getLogger(name) for name in ENGINE_LOGGER_NAMES)
    return [logger for logger in loggers if handler in logger.handlers]
