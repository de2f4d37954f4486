"""
Centralized logging with rotating, compressed log files and sensitive-value redaction.
"""
import sys
import os
import re
import gzip
import shutil
import atexit
import logging
import logging.handlers
import threading
from pathlib import Path
from typing import Any, Dict
import structlog
from pythonjsonlogger import jsonlogger
from core.config import settings


# Logger names grouped by the component file they write to
COMPONENT_LOGGERS = {
    "security": ["security", "auth", "oauth"],
    "database": ["database", "sqlalchemy.engine", "alembic"],
    "access": ["access", "uvicorn.access", "httpx"],
}

# Loggers that only write to their component file
ISOLATED_LOGGERS = {"security", "auth", "oauth"}


class ComponentFilter(logging.Filter):
    """Filter to ensure all log records have a component field."""

    def __init__(self, default_component: str = "app"):
        super().__init__()
        self.default_component = default_component

    def filter(self, record):
        if not hasattr(record, "component"):
            for component, names in COMPONENT_LOGGERS.items():
                if any(record.name == name or record.name.startswith(name + ".") for name in names):
                    record.component = component
                    break
            else:
                record.component = self.default_component
        return True


class SecurityFilter(logging.Filter):
    """Filter to redact tokens, passwords and credentials from log records."""

    SENSITIVE_KEYS = {
        "password", "token", "secret", "authorization", "credential",
        "jwt", "bearer", "code", "state", "private_key",
    }
    # Compound keys such as access_token or client_secret
    SENSITIVE_SUFFIXES = ("_token", "_secret", "_password", "_key")

    _BEARER = re.compile(r"Bearer\s+[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+")
    _JWT = re.compile(r"\beyJ[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+")
    _URL_CREDENTIALS = re.compile(r"://[^:/@\s]+:[^@\s]+@")
    _TOKEN_QUERY = re.compile(r"([?&]token=)[^&\s]+")

    def filter(self, record):
        if isinstance(record.msg, str):
            record.msg = self.sanitize(record.msg)

        if record.args:
            record.args = tuple(self._sanitize_value(arg) for arg in record.args)

        for key, value in list(record.__dict__.items()):
            if key in self.SENSITIVE_KEYS and value is not None:
                setattr(record, key, "[REDACTED]")
            elif isinstance(value, (str, dict)) and key not in ("msg", "args"):
                setattr(record, key, self._sanitize_value(value))

        return True

    @classmethod
    def sanitize(cls, message: str) -> str:
        message = cls._BEARER.sub("Bearer [REDACTED]", message)
        message = cls._JWT.sub("[REDACTED]", message)
        message = cls._URL_CREDENTIALS.sub("://[REDACTED]:[REDACTED]@", message)
        message = cls._TOKEN_QUERY.sub(r"\1[REDACTED]", message)
        return message

    @classmethod
    def _is_sensitive_key(cls, key: Any) -> bool:
        key = str(key).lower().replace("-", "_")
        return key in cls.SENSITIVE_KEYS or key.endswith(cls.SENSITIVE_SUFFIXES)

    def _sanitize_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self.sanitize(value)
        if isinstance(value, dict):
            return {k: "[REDACTED]" if self._is_sensitive_key(k) else v for k, v in value.items()}
        return value


def _gzip_file(path: str) -> None:
    """Compress ``path`` into ``path.gz`` and remove the original."""
    try:
        with open(path, "rb") as f_in, gzip.open(f"{path}.gz", "wb") as f_out:
            shutil.copyfileobj(f_in, f_out)
        os.remove(path)
    except OSError as e:
        # Keep the uncompressed backup if compression fails
        print(f"Warning: Failed to compress log file {path}: {e}", file=sys.stderr)


class CompressedTimedRotatingFileHandler(logging.handlers.TimedRotatingFileHandler):
    """Timed rotating file handler that gzips rotated files."""

    def __init__(self, *args, **kwargs):
        self.compress_logs = kwargs.pop("compress_logs", settings.log_compression)
        super().__init__(*args, **kwargs)

    def doRollover(self):
        super().doRollover()
        if not self.compress_logs:
            return
        directory, base = os.path.split(self.baseFilename)
        for name in os.listdir(directory or "."):
            if name.startswith(base + ".") and not name.endswith(".gz"):
                _gzip_file(os.path.join(directory, name))


class CompressedRotatingFileHandler(logging.handlers.RotatingFileHandler):
    """Size rotating file handler that gzips rotated files."""

    def __init__(self, *args, **kwargs):
        self.compress_logs = kwargs.pop("compress_logs", settings.log_compression)
        super().__init__(*args, **kwargs)

    def doRollover(self):
        if self.compress_logs and self.backupCount > 0:
            # Shift existing compressed backups up by one before the base rollover
            for i in range(self.backupCount - 1, 0, -1):
                src = f"{self.baseFilename}.{i}.gz"
                dst = f"{self.baseFilename}.{i + 1}.gz"
                if os.path.exists(src):
                    if os.path.exists(dst):
                        os.remove(dst)
                    os.rename(src, dst)
        super().doRollover()
        backup = f"{self.baseFilename}.1"
        if self.compress_logs and os.path.exists(backup):
            _gzip_file(backup)


class StructuredLogger:
    """A logger wrapper that accepts structured keyword fields."""

    def __init__(self, name: str, logger: logging.Logger):
        self.name = name
        self._logger = logger

    def _format_message(self, msg: str, fields: Dict[str, Any]) -> str:
        if not fields or settings.log_format == "json":
            # JSON output carries the fields as separate attributes
            return msg
        parts = ", ".join(f"{key}={value}" for key, value in fields.items())
        return f"{msg} [{parts}]"

    def _log(self, level: int, msg: str, *args, **kwargs):
        if not self._logger.isEnabledFor(level):
            return
        exc_info = kwargs.pop("exc_info", False)
        extra = dict(kwargs.pop("extra", {}) or {})
        extra.setdefault("component", self.name)

        if settings.log_format == "json":
            # LogRecord attribute names cannot be overwritten through ``extra``
            for key, value in kwargs.items():
                safe_key = key if key not in _RESERVED_RECORD_ATTRS else f"field_{key}"
                extra[safe_key] = value

        self._logger.log(level, self._format_message(msg, kwargs), *args, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        kwargs["exc_info"] = True
        self.error(msg, *args, **kwargs)

    def critical(self, msg: str, *args, **kwargs):
        self._log(logging.CRITICAL, msg, *args, **kwargs)


_RESERVED_RECORD_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


def _prefix_reserved_keys(logger, method_name, event_dict):
    """Rename structlog keys that would clash with LogRecord attributes."""
    for key in [k for k in event_dict if k != "event" and k in _RESERVED_RECORD_ATTRS]:
        event_dict[f"field_{key}"] = event_dict.pop(key)
    return event_dict


def configure_structlog():
    """Route structlog events through the standard library handlers and filters."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            _prefix_reserved_keys,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


class CentralizedLogManager:
    """Singleton log manager that owns every handler the application installs."""

    _instance = None
    _lock = threading.Lock()
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._loggers: Dict[str, StructuredLogger] = {}
        self._handlers: Dict[str, logging.Handler] = {}
        self._log_directory = Path(settings.log_directory)

        with self._lock:
            if not self._initialized:
                if settings.enable_file_logging:
                    self._log_directory.mkdir(parents=True, exist_ok=True)
                self._setup_root_logger()
                self._setup_component_loggers()
                configure_structlog()
                self._initialized = True

    def _create_formatter(self, include_component: bool = True) -> logging.Formatter:
        if settings.log_format == "json":
            fmt = "%(asctime)s %(name)s %(levelname)s %(message)s"
            if include_component:
                fmt = "%(asctime)s %(name)s %(levelname)s %(component)s %(message)s"
            return jsonlogger.JsonFormatter(fmt=fmt, datefmt="%Y-%m-%dT%H:%M:%S")

        fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        if include_component:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - [%(component)s] - %(message)s"
        return logging.Formatter(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def _create_rotating_handler(self, log_file: str, level: int = logging.INFO) -> logging.Handler:
        file_path = str(self._log_directory / log_file)

        if settings.log_rotation_when != "size":
            handler = CompressedTimedRotatingFileHandler(
                filename=file_path,
                when=settings.log_rotation_when,
                interval=settings.log_rotation_interval,
                backupCount=settings.log_file_backup_count,
                compress_logs=settings.log_compression,
                encoding="utf-8",
            )
        else:
            handler = CompressedRotatingFileHandler(
                filename=file_path,
                maxBytes=settings.log_file_max_size_mb * 1024 * 1024,
                backupCount=settings.log_file_backup_count,
                compress_logs=settings.log_compression,
                encoding="utf-8",
            )

        handler.setLevel(level)
        handler.addFilter(ComponentFilter())
        handler.addFilter(SecurityFilter())
        handler.setFormatter(self._create_formatter(include_component=True))
        return handler

    def _create_console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
        handler.addFilter(ComponentFilter())
        handler.addFilter(SecurityFilter())
        handler.setFormatter(self._create_formatter(include_component=False))
        return handler

    def _setup_root_logger(self):
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

        console_handler = self._create_console_handler()
        root_logger.addHandler(console_handler)
        self._handlers["console"] = console_handler

        if settings.enable_file_logging:
            app_handler = self._create_rotating_handler(settings.app_log_file)
            root_logger.addHandler(app_handler)
            self._handlers["app"] = app_handler

            error_handler = self._create_rotating_handler(settings.error_log_file, logging.ERROR)
            root_logger.addHandler(error_handler)
            self._handlers["error"] = error_handler

    def _setup_component_loggers(self):
        if not settings.enable_file_logging:
            return

        component_files = {
            "security": (settings.security_log_file, logging.INFO),
            "database": (
                settings.database_log_file,
                logging.INFO if settings.enable_sql_logging else logging.WARNING,
            ),
            "access": (settings.access_log_file, logging.INFO),
        }

        for component, (log_file, level) in component_files.items():
            handler = self._create_rotating_handler(log_file, level)
            self._handlers[component] = handler

            for logger_name in COMPONENT_LOGGERS[component]:
                logger = logging.getLogger(logger_name)
                logger.addHandler(handler)
                logger.setLevel(level)
                if logger_name in ISOLATED_LOGGERS:
                    logger.propagate = False

    def get_logger(self, name: str) -> StructuredLogger:
        if name not in self._loggers:
            self._loggers[name] = StructuredLogger(name, logging.getLogger(name))
        return self._loggers[name]

    def shutdown(self):
        """Close every handler this manager installed."""
        for handler_name, handler in list(self._handlers.items()):
            for logger in [logging.getLogger()] + [
                logging.getLogger(name) for names in COMPONENT_LOGGERS.values() for name in names
            ]:
                if handler in logger.handlers:
                    logger.removeHandler(handler)
            try:
                handler.close()
            except OSError as e:
                print(f"Error closing handler {handler_name}: {e}", file=sys.stderr)

        self._handlers.clear()
        self._loggers.clear()
        CentralizedLogManager._initialized = False
        CentralizedLogManager._instance = None


# Global singleton instance
_log_manager = None


def setup_logging() -> CentralizedLogManager:
    """Setup centralized logging system."""
    global _log_manager
    if _log_manager is None:
        _log_manager = CentralizedLogManager()
    return _log_manager


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return setup_logging().get_logger(name)


def shutdown_logging():
    """Shutdown logging system gracefully."""
    global _log_manager
    if _log_manager is not None:
        _log_manager.shutdown()
        _log_manager = None


# Pre-configured logger instances for common components
app_logger = get_logger("app")
security_logger = get_logger("security")
database_logger = get_logger("database")


atexit.register(shutdown_logging)
