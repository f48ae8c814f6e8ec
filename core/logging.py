"""
Centralized logging: console output, optional rotating log files with gzip
compression, and a structured logger wrapper that accepts key=value context.
"""
import atexit
import gzip
import logging
import logging.handlers
import os
import re
import shutil
import sys
import threading
from pathlib import Path
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from core.config import settings


# Logger names routed to each component log file
COMPONENT_LOGGERS = {
    "versioning": ["versioning", "diff", "restore"],
    "database": ["database", "sqlalchemy.engine", "alembic"],
    "access": ["access", "middleware", "uvicorn.access"],
}


class ComponentFilter(logging.Filter):
    """Guarantee every record has a ``component`` attribute."""

    def __init__(self, default_component: str = "app"):
        super().__init__()
        self.default_component = default_component

    def filter(self, record):
        if not hasattr(record, "component"):
            name = record.name
            if name.startswith("sqlalchemy") or name.startswith("alembic"):
                record.component = "database"
            elif name.startswith("uvicorn"):
                record.component = "http"
            else:
                record.component = self.default_component
        return True


class SecurityFilter(logging.Filter):
    """Scrub credentials out of log messages and dict arguments."""

    SENSITIVE_KEYS = {"password", "token", "secret", "api_key", "authorization", "credential"}

    _URL_CREDENTIALS = re.compile(r"://[^:/@]+:[^@]+@")
    _BEARER = re.compile(r"Bearer\s+[A-Za-z0-9\-_=.]+")

    def filter(self, record):
        if isinstance(record.msg, str):
            record.msg = self._scrub(record.msg)
        if record.args and isinstance(record.args, tuple):
            record.args = tuple(self._scrub_value(arg) for arg in record.args)
        return True

    def _scrub(self, message: str) -> str:
        message = self._URL_CREDENTIALS.sub("://[REDACTED]:[REDACTED]@", message)
        return self._BEARER.sub("Bearer [REDACTED]", message)

    def _scrub_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self._scrub(value)
        if isinstance(value, dict):
            return {
                k: "[REDACTED]" if any(s in str(k).lower() for s in self.SENSITIVE_KEYS) else v
                for k, v in value.items()
            }
        return value


def _gzip_file(path: str) -> None:
    with open(path, "rb") as f_in:
        with gzip.open(f"{path}.gz", "wb") as f_out:
            shutil.copyfileobj(f_in, f_out)
    os.remove(path)


class CompressedRotatingFileHandler(logging.handlers.RotatingFileHandler):
    """Size-based rotation that gzips rotated files."""

    def __init__(self, *args, compress_logs: bool = True, **kwargs):
        self.compress_logs = compress_logs
        super().__init__(*args, **kwargs)

    def doRollover(self):
        super().doRollover()
        if not (self.compress_logs and self.backupCount > 0):
            return

        # Shift older archives up by one before compressing the fresh backup
        for i in range(self.backupCount - 1, 0, -1):
            src = f"{self.baseFilename}.{i}.gz"
            dst = f"{self.baseFilename}.{i + 1}.gz"
            if os.path.exists(src):
                if os.path.exists(dst):
                    os.remove(dst)
                os.rename(src, dst)

        backup_file = f"{self.baseFilename}.1"
        if os.path.exists(backup_file):
            try:
                _gzip_file(backup_file)
            except OSError as e:
                print(f"Warning: Failed to compress log file {backup_file}: {e}")


class CompressedTimedRotatingFileHandler(logging.handlers.TimedRotatingFileHandler):
    """Time-based rotation that gzips rotated files."""

    def __init__(self, *args, compress_logs: bool = True, **kwargs):
        self.compress_logs = compress_logs
        super().__init__(*args, **kwargs)

    def doRollover(self):
        super().doRollover()
        if not self.compress_logs:
            return

        prefix = os.path.basename(self.baseFilename) + "."
        directory = os.path.dirname(self.baseFilename)
        for name in os.listdir(directory):
            if name.startswith(prefix) and not name.endswith(".gz"):
                path = os.path.join(directory, name)
                try:
                    _gzip_file(path)
                except OSError as e:
                    print(f"Warning: Failed to compress log file {path}: {e}")


class StructuredLogger:
    """Logger wrapper accepting structured key=value context on every call."""

    def __init__(self, name: str, logger: logging.Logger):
        self.name = name
        self._logger = logger

    def _log(self, level: int, msg: str, *args, **kwargs):
        exc_info = kwargs.pop("exc_info", False)
        extra = dict(kwargs.pop("extra", {}) or {})
        extra.setdefault("component", self.name)

        if kwargs:
            if settings.log_format == "json":
                # JsonFormatter serialises extra fields as top-level keys
                extra.update(kwargs)
            else:
                context = ", ".join(f"{key}={value}" for key, value in kwargs.items())
                msg = f"{msg} [{context}]"

        self._logger.log(level, msg, *args, exc_info=exc_info, extra=extra)

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


class CentralizedLogManager:
    """Singleton owning the root and component handlers."""

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

        with self._lock:
            if self._initialized:
                return
            self._loggers: Dict[str, StructuredLogger] = {}
            self._handlers: Dict[str, logging.Handler] = {}
            self._log_directory = Path(settings.log_directory)
            if settings.enable_file_logging:
                self._log_directory.mkdir(parents=True, exist_ok=True)
            self._setup_root_logger()
            self._setup_component_loggers()
            CentralizedLogManager._initialized = True

    def _create_formatter(self, include_component: bool) -> logging.Formatter:
        if settings.log_format == "json":
            fmt = "%(asctime)s %(name)s %(levelname)s %(message)s"
            if include_component:
                fmt = "%(asctime)s %(name)s %(levelname)s %(component)s %(message)s"
            return jsonlogger.JsonFormatter(fmt=fmt, datefmt="%Y-%m-%dT%H:%M:%S")

        fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        if include_component:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - [%(component)s] - %(message)s"
        return logging.Formatter(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def _create_file_handler(self, log_file: str, level: int = logging.INFO) -> logging.Handler:
        file_path = str(self._log_directory / log_file)
        if settings.log_rotation_when == "size":
            handler = CompressedRotatingFileHandler(
                filename=file_path,
                maxBytes=settings.log_file_max_size_mb * 1024 * 1024,
                backupCount=settings.log_file_backup_count,
                compress_logs=settings.log_compression,
            )
        else:
            handler = CompressedTimedRotatingFileHandler(
                filename=file_path,
                when=settings.log_rotation_when,
                interval=settings.log_rotation_interval,
                backupCount=settings.log_file_backup_count,
                compress_logs=settings.log_compression,
            )
        handler.setLevel(level)
        handler.addFilter(ComponentFilter())
        handler.addFilter(SecurityFilter())
        handler.setFormatter(self._create_formatter(include_component=True))
        return handler

    def _setup_root_logger(self):
        level = getattr(logging, settings.log_level.upper(), logging.INFO)
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.setLevel(level)

        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level)
        console.addFilter(ComponentFilter())
        console.addFilter(SecurityFilter())
        console.setFormatter(self._create_formatter(include_component=False))
        root_logger.addHandler(console)
        self._handlers["console"] = console

        if settings.enable_file_logging:
            self._handlers["app"] = self._create_file_handler(settings.app_log_file)
            self._handlers["error"] = self._create_file_handler(settings.error_log_file, logging.ERROR)
            root_logger.addHandler(self._handlers["app"])
            root_logger.addHandler(self._handlers["error"])

    def _setup_component_loggers(self):
        if not settings.enable_file_logging:
            return

        files = {
            "versioning": settings.versioning_log_file,
            "database": settings.database_log_file,
            "access": settings.access_log_file,
        }
        for component, logger_names in COMPONENT_LOGGERS.items():
            level = logging.INFO
            if component == "database" and not settings.enable_sql_logging:
                level = logging.WARNING
            handler = self._create_file_handler(files[component], level)
            self._handlers[component] = handler
            for logger_name in logger_names:
                logging.getLogger(logger_name).addHandler(handler)

    def get_logger(self, name: str) -> StructuredLogger:
        if name not in self._loggers:
            self._loggers[name] = StructuredLogger(name, logging.getLogger(name))
        return self._loggers[name]

    def shutdown(self):
        for handler_name, handler in list(self._handlers.items()):
            for logger in [logging.getLogger()] + [
                logging.getLogger(n) for names in COMPONENT_LOGGERS.values() for n in names
            ]:
                if handler in logger.handlers:
                    logger.removeHandler(handler)
            try:
                handler.close()
            except OSError as e:
                print(f"Error closing handler {handler_name}: {e}")
        self._handlers.clear()
        self._loggers.clear()
        CentralizedLogManager._initialized = False
        CentralizedLogManager._instance = None


_log_manager = None


def setup_logging() -> CentralizedLogManager:
    """Initialise the logging system once per process."""
    global _log_manager
    if _log_manager is None:
        _log_manager = CentralizedLogManager()
    return _log_manager


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for a component."""
    return setup_logging().get_logger(name)


def shutdown_logging():
    global _log_manager
    if _log_manager is not None:
        _log_manager.shutdown()
        _log_manager = None


app_logger = get_logger("app")
versioning_logger = get_logger("versioning")
database_logger = get_logger("database")

atexit.register(shutdown_logging)
