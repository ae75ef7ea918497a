"""
Logging Configuration for mcbridge

Routes every component logger (``mcbridge.<component>``) to a rotating log
file and to stdout. structlog runs on top of stdlib logging and is used where
a log line needs bound context, such as the per-connection logger of the
WebSocket session.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict, Optional
import structlog


LOG_FORMAT = '[%(asctime)s] [%(levelname)s] %(name)s - %(message)s'
FILE_DATEFMT = '%Y-%m-%d %H:%M:%S'
CONSOLE_DATEFMT = '%H:%M:%S'

# Libraries that log every frame or heartbeat at INFO/DEBUG
NOISY_LOGGERS = (
    'asyncio',
    'websockets',
    'websockets.server',
    'discord',
    'discord.gateway',
    'discord.http',
)

SIZE_UNITS = {
    'KB': 1024,
    'MB': 1024 ** 2,
    'GB': 1024 ** 3,
}


def parse_size(size: str) -> int:
    """Convert '10MB' style sizes to bytes; a bare number is bytes"""
    size = str(size).strip().upper()
    for suffix, factor in SIZE_UNITS.items():
        if size.endswith(suffix):
            return int(size[:-len(suffix)]) * factor
    return int(size)


def _level(name: str) -> int:
    return getattr(logging, str(name).upper())


class BridgeLogger:
    """
    Applies the ``logging`` configuration section to the root logger.

    Debug mode (``app.debug``) overrides both the file and console levels so
    raw inbound frames logged by the session reach every handler.
    """

    def __init__(self, config: Dict):
        self.config = config
        self.settings = config.get('logging', {}) or {}
        self.debug = bool(config.get('app', {}).get('debug', False))
        self.loggers: Dict[str, logging.Logger] = {}
        self._setup_logging()

    @property
    def level(self) -> str:
        return 'DEBUG' if self.debug else str(self.settings.get('level', 'INFO'))

    @property
    def console_level(self) -> str:
        return 'DEBUG' if self.debug else str(self.settings.get('console_level', 'INFO'))

    def _setup_logging(self):
        self._configure_structlog()

        root = logging.getLogger()
        root.handlers.clear()
        root.setLevel(_level(self.level))

        log_file = self.settings.get('file', 'logs/mcbridge.log')
        if log_file:
            root.addHandler(self._file_handler(log_file))

        if self.settings.get('console', True):
            root.addHandler(self._console_handler())

        for component, level in (self.settings.get('components') or {}).items():
            logging.getLogger(f'mcbridge.{component}').setLevel(_level(level))

        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    @staticmethod
    def _configure_structlog():
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="ISO"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                structlog.processors.JSONRenderer(ensure_ascii=False)
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def _file_handler(self, log_file: str) -> logging.Handler:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

        handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=parse_size(self.settings.get('max_size', '10MB')),
            backupCount=self.settings.get('backup_count', 5),
            encoding='utf-8'
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=FILE_DATEFMT))
        handler.setLevel(_level(self.level))
        return handler

    def _console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=CONSOLE_DATEFMT))
        handler.setLevel(_level(self.console_level))
        return handler

    def get_logger(self, name: str) -> logging.Logger:
        """Logger for one bridge component"""
        if name not in self.loggers:
            full_name = name if name.startswith('mcbridge') else f'mcbridge.{name}'
            self.loggers[name] = logging.getLogger(full_name)
        return self.loggers[name]


_logger_instance: Optional[BridgeLogger] = None


def initialize_logging(config: Dict) -> BridgeLogger:
    """Configure logging for the whole process"""
    global _logger_instance
    _logger_instance = BridgeLogger(config)
    return _logger_instance


def get_logger(name: str) -> logging.Logger:
    if _logger_instance is None:
        return logging.getLogger(f'mcbridge.{name}')
    return _logger_instance.get_logger(name)


def get_structured_logger(name: str) -> structlog.stdlib.BoundLogger:
    """structlog logger sharing the stdlib handlers, for bound context"""
    return structlog.get_logger(f'mcbridge.{name}')
