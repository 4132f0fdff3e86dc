"""
Structured logging configuration for the queue importer.
"""

import os
import logging
import logging.handlers
import structlog
from typing import Any, Dict, Optional
from datetime import datetime

_current_run_id: Optional[str] = None


class ImportLogger:
    """Configures structured logging for the importer."""

    @staticmethod
    def setup_logging(
        log_level: str = None,
        log_format: str = None,
        log_file: str = None
    ) -> None:
        """Set up structured logging for the application."""

        # Get configuration from environment or defaults
        log_level = log_level or os.getenv('LOG_LEVEL', 'INFO')
        log_format = log_format or os.getenv('LOG_FORMAT', 'console')
        log_file = log_file or os.getenv('LOG_FILE')
        level = getattr(logging, log_level.upper(), None)
        if not isinstance(level, int):
            raise ValueError(f"Invalid log level: {log_level}")

        handlers = []

        # Console handler
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        handlers.append(console_handler)

        # File handler (if specified)
        if log_file:
            log_dir = os.path.dirname(log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5
            )
            file_handler.setLevel(level)
            handlers.append(file_handler)

        # Records from plain logging.getLogger() callers go through the
        # same renderer as structlog events
        formatter = structlog.stdlib.ProcessorFormatter(
            processor=ImportLogger._get_renderer(log_format),
            foreign_pre_chain=[
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                ImportLogger._add_run_id,
            ],
        )
        for handler in handlers:
            handler.setFormatter(formatter)

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                ImportLogger._add_run_id,
                structlog.processors.UnicodeDecoder(),
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        root_logger.handlers.clear()
        root_logger.handlers.extend(handlers)

        # pika is chatty at INFO about connection internals
        logging.getLogger('pika').setLevel(max(level, logging.WARNING))

        logger = structlog.get_logger()
        logger.debug(
            "Logging initialized",
            log_level=log_level,
            log_format=log_format,
            log_file=log_file or "console"
        )

    @staticmethod
    def _add_run_id(logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Attach the active import run ID to log events."""
        if _current_run_id and 'run_id' not in event_dict:
            event_dict['run_id'] = _current_run_id

        return event_dict

    @staticmethod
    def _get_renderer(log_format: str):
        """Get the appropriate renderer based on format."""
        if log_format.lower() == 'json':
            return structlog.processors.JSONRenderer()
        else:
            return structlog.dev.ConsoleRenderer(colors=False)


class RunLogger:
    """Logger bound to a single import run."""

    def __init__(self, run_id: str = None):
        self.run_id = run_id
        self.logger = structlog.get_logger("queue_import")

        if run_id:
            self.logger = self.logger.bind(run_id=run_id)

    def info(self, message: str, **kwargs):
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        self.logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs):
        self.logger.error(message, **kwargs)


class OperationLogger:
    """Context manager for logging operation lifecycle."""

    def __init__(self, operation_name: str, run_id: str = None, **context):
        self.operation_name = operation_name
        self.run_id = run_id
        self.context = context
        self.start_time = None
        self.logger = RunLogger(run_id)
        self._previous_run_id = None

    def __enter__(self):
        """Enter operation context."""
        global _current_run_id
        self._previous_run_id = _current_run_id
        _current_run_id = self.run_id
        self.start_time = datetime.now()

        self.logger.info(
            f"Operation started: {self.operation_name}",
            operation=self.operation_name,
            **self.context
        )

        return self.logger

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit operation context."""
        global _current_run_id
        duration = (datetime.now() - self.start_time).total_seconds()

        if exc_type is None:
            self.logger.info(
                f"Operation completed: {self.operation_name}",
                operation=self.operation_name,
                duration_seconds=duration,
                **self.context
            )
        else:
            self.logger.error(
                f"Operation failed: {self.operation_name}",
                operation=self.operation_name,
                duration_seconds=duration,
                error_type=exc_type.__name__,
                error_message=str(exc_val) if exc_val else None,
                **self.context
            )

        _current_run_id = self._previous_run_id
        return False  # Don't suppress exceptions
