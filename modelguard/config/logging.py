"""
Logging configuration for modelguard.

Nothing here runs on import: applications call ``setup_logging()`` when
they want modelguard to install its handlers.
"""

import logging
import logging.config
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from modelguard.config.settings import Settings, get_settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that adds timestamp, level and environment fields"""

    def __init__(self, *args, environment: str = "development", **kwargs):
        super().__init__(*args, **kwargs)
        self.environment = environment

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['environment'] = self.environment

        # Set by the gate when it logs a failed validation
        if hasattr(record, 'model'):
            log_record['model'] = record.model
        if hasattr(record, 'fields'):
            log_record['fields'] = record.fields

        if record.exc_info:
            log_record['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info)
            }


def build_logging_config(config: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Build the ``dictConfig`` dictionary for the given settings.

    Args:
        config: Settings to read; defaults to the cached settings

    Returns:
        Logging configuration dictionary
    """
    config = config or get_settings()
    handlers = ['console']

    logging_config: Dict[str, Any] = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
            },
            'json': {
                '()': CustomJsonFormatter,
                'format': '%(timestamp)s %(level)s %(logger)s %(message)s',
                'environment': config.ENVIRONMENT,
            },
            'colored': {
                '()': 'colorlog.ColoredFormatter',
                'format': '%(log_color)s%(asctime)s [%(levelname)s] %(name)s: %(message)s',
                'log_colors': {
                    'DEBUG': 'cyan',
                    'INFO': 'green',
                    'WARNING': 'yellow',
                    'ERROR': 'red',
                    'CRITICAL': 'red,bg_white',
                }
            }
        },
        'handlers': {
            'console': {
                'level': 'DEBUG' if config.DEBUG else config.LOG_LEVEL,
                'class': 'logging.StreamHandler',
                'formatter': config.LOG_FORMAT
            },
        },
        'loggers': {
            'modelguard': {
                'handlers': handlers,
                'level': 'DEBUG' if config.DEBUG else config.LOG_LEVEL,
                'propagate': False
            },
            'sqlalchemy.engine': {
                'handlers': ['console'],
                'level': 'INFO' if config.DATABASE_ECHO else 'WARNING',
                'propagate': False
            },
        }
    }

    if config.LOG_DIR:
        logging_config['handlers']['file'] = {
            'level': 'INFO',
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': os.path.join(config.LOG_DIR, 'modelguard.log'),
            'maxBytes': 10485760,  # 10MB
            'backupCount': 10,
            'formatter': 'json',
            'encoding': 'utf8'
        }
        handlers.append('file')

    return logging_config


def setup_logging(config: Optional[Settings] = None) -> logging.Logger:
    """Configure modelguard logging"""
    config = config or get_settings()
    if config.LOG_DIR:
        os.makedirs(config.LOG_DIR, exist_ok=True)
    logging.config.dictConfig(build_logging_config(config))
    logger = logging.getLogger("modelguard")
    logger.info(f"Logging initialized with level: {config.LOG_LEVEL}")
    return logger
