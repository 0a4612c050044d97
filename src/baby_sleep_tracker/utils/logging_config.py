"""
Centralized logging configuration for Baby Sleep Tracker.
Provides component-specific loggers with separate log files.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime

from ..config import get_config


DETAILED_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[%(filename)s:%(lineno)d] - %(funcName)s() - %(message)s"
)
SIMPLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


class ComponentLogger:
    """Manages component-specific logging with separate files."""

    _loggers: Dict[str, logging.Logger] = {}
    _initialized = False
    _log_dir: Optional[Path] = None
    _to_file = True
    _debug = False
    _unified_handler: Optional[logging.Handler] = None

    # Component definitions with their log levels
    COMPONENTS = {
        'api': {'level': logging.INFO, 'file': 'api.log'},
        'database': {'level': logging.INFO, 'file': 'database.log'},
        'domain': {'level': logging.INFO, 'file': 'domain.log'},
        'service': {'level': logging.INFO, 'file': 'service.log'},
        'main': {'level': logging.INFO, 'file': 'main.log'},
        'error': {'level': logging.ERROR, 'file': 'errors.log'},  # Centralized error log
    }

    @classmethod
    def initialize(cls, log_dir: Optional[str] = None, debug: bool = False) -> None:
        """
        Initialize the logging system with component-specific loggers.

        Args:
            log_dir: Directory for log files. Defaults to config.app.log_dir
            debug: Enable debug logging for all components
        """
        if cls._initialized:
            return

        config = get_config()
        debug = debug or config.server.debug
        cls._debug = debug
        cls._to_file = config.app.log_to_file

        if cls._to_file:
            cls._log_dir = Path(log_dir or config.app.log_dir)

            # Session-specific subdirectory
            session_dir = datetime.now().strftime("%Y%m%d_%H%M%S")
            cls._log_dir = cls._log_dir / session_dir
            cls._log_dir.mkdir(parents=True, exist_ok=True)

            session_info_file = cls._log_dir / "session_info.txt"
            with open(session_info_file, 'w', encoding='utf-8') as f:
                f.write(f"Session started: {datetime.now().isoformat()}\n")
                f.write(f"Debug mode: {debug}\n")
                f.write("Config:\n")
                f.write(f"  Database: {config.database.url}\n")
                f.write(f"  Store backend: {config.app.store_backend}\n")
                f.write(f"  Log directory: {cls._log_dir}\n")

        root_level = logging.DEBUG if debug else logging.INFO
        unified_handler = None
        if cls._to_file:
            unified_handler = logging.handlers.RotatingFileHandler(
                cls._log_dir / 'unified.log',
                maxBytes=20 * 1024 * 1024,  # 20MB
                backupCount=3,
                encoding='utf-8'
            )
            unified_handler.setLevel(root_level)
            unified_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))

        cls._unified_handler = unified_handler

        for component_name, component_config in cls.COMPONENTS.items():
            level = logging.DEBUG if debug else component_config['level']
            cls._loggers[component_name] = cls._build_logger(
                component_name, level, component_config['file']
            )

        cls._initialized = True

        main_logger = cls._loggers['main']
        main_logger.info("Baby Sleep Tracker logging system initialized")
        main_logger.info(f"Log directory: {cls._log_dir}")

    @classmethod
    def _build_logger(cls, component: str, level: int, file_name: str) -> logging.Logger:
        logger = logging.getLogger(f"babysleep.{component}")
        logger.handlers.clear()
        logger.setLevel(level)

        if cls._to_file:
            logger.propagate = False
            file_handler = logging.handlers.RotatingFileHandler(
                cls._log_dir / file_name,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
            logger.addHandler(file_handler)

            if cls._unified_handler is not None:
                logger.addHandler(cls._unified_handler)

            # Console handler for errors and critical
            if component in ('error', 'main'):
                console_handler = logging.StreamHandler(sys.stderr)
                console_handler.setLevel(logging.ERROR)
                console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT, datefmt='%H:%M:%S'))
                logger.addHandler(console_handler)
        else:
            # Without files, records flow to the root logger (pytest caplog, uvicorn)
            logger.propagate = True

        return logger

    @classmethod
    def _component_for(cls, component: str) -> str:
        """Map a module path like ``baby_sleep_tracker.api.entries`` to a component."""
        if not component.startswith('baby_sleep_tracker.'):
            return component

        parts = component.split('.')
        if len(parts) < 2:
            return 'main'
        package = parts[1]
        if package == 'api':
            return 'api'
        if package in ('db', 'repositories', 'store'):
            return 'database'
        if package == 'domain':
            return 'domain'
        if package == 'services':
            return 'service'
        return 'main'

    @classmethod
    def get_logger(cls, component: str) -> logging.Logger:
        """
        Get a logger for a specific component.

        Args:
            component: Component name (api, database, domain, service, ...)
                      or a module path like 'baby_sleep_tracker.domain.timeline'

        Returns:
            Logger instance for the component
        """
        if not cls._initialized:
            cls.initialize()

        component = cls._component_for(component)
        if component not in cls._loggers:
            level = logging.DEBUG if cls._debug else logging.INFO
            cls._loggers[component] = cls._build_logger(component, level, f'{component}.log')

        return cls._loggers[component]

    @classmethod
    def log_exception(cls, component: str, exc: Exception, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Log an exception with context to both component and error logs.

        Args:
            component: Component where the exception occurred
            exc: The exception to log
            context: Additional context information
        """
        component_logger = cls.get_logger(component)
        error_logger = cls.get_logger('error')

        context_str = ""
        if context:
            context_str = " | Context: " + ", ".join(f"{k}={v}" for k, v in context.items())

        component_logger.error(f"Exception in {component}: {type(exc).__name__}: {exc}{context_str}", exc_info=exc)
        if error_logger is not component_logger:
            error_logger.error(f"[{component}] {type(exc).__name__}: {exc}{context_str}", exc_info=exc)

    @classmethod
    def get_log_directory(cls) -> Optional[Path]:
        """Get the current log directory path."""
        return cls._log_dir

    @classmethod
    def reset(cls) -> None:
        """Drop all component loggers so the next call re-initializes from config."""
        for logger in cls._loggers.values():
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                if isinstance(handler, logging.FileHandler):
                    handler.close()
        if cls._unified_handler is not None:
            cls._unified_handler.close()
        cls._unified_handler = None
        cls._loggers = {}
        cls._initialized = False
        cls._log_dir = None


# Convenience functions
def get_logger(component: str) -> logging.Logger:
    """Get a logger for a specific component."""
    return ComponentLogger.get_logger(component)


def initialize_logging(log_dir: Optional[str] = None, debug: bool = False) -> None:
    """Initialize the logging system."""
    ComponentLogger.initialize(log_dir=log_dir, debug=debug)


def log_exception(component: str, exc: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """Log an exception with context."""
    ComponentLogger.log_exception(component, exc, context)


def get_log_directory() -> Optional[Path]:
    """Get the current log directory path."""
    return ComponentLogger.get_log_directory()
