"""
Custom logging configuration that keeps the agent token out of the logs
"""

import logging
import logging.config
from typing import Any, Dict, Optional

REDACTED = "***"


class TokenRedactionFilter(logging.Filter):
    """Filter that masks the agent token in log messages."""

    def __init__(self, token: Optional[str] = None):
        super().__init__()
        self.token = token
        self._formatter = logging.Formatter()

    def filter(self, record: logging.LogRecord) -> bool:
        """Replace any occurrence of the token in the message and traceback."""
        if self.token:
            message = record.getMessage()
            if self.token in message:
                record.msg = message.replace(self.token, REDACTED)
                record.args = None
            # Formatters reuse exc_text once set, so render it here
            if record.exc_info and not record.exc_text:
                record.exc_text = self._formatter.formatException(record.exc_info)
            if record.exc_text:
                record.exc_text = record.exc_text.replace(self.token, REDACTED)
            if record.stack_info:
                record.stack_info = record.stack_info.replace(self.token, REDACTED)
        return True  # Never drop records, only rewrite them


def get_logging_config(level: str = "INFO", token: Optional[str] = None) -> Dict[str, Any]:
    """Get logging configuration with token redaction."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "token_redaction_filter": {
                "()": TokenRedactionFilter,
                "token": token,
            }
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
                "filters": ["token_redaction_filter"]
            }
        },
        "loggers": {
            "kubeforge": {
                "handlers": ["default"],
                "level": level,
                "propagate": False
            },
            "kubernetes": {
                "handlers": ["default"],
                "level": "WARNING",
                "propagate": False
            },
            "urllib3": {
                "handlers": ["default"],
                "level": "WARNING",
                "propagate": False
            }
        },
        "root": {
            "level": level,
            "handlers": ["default"]
        }
    }


def configure_logging(level: str = "INFO", token: Optional[str] = None) -> None:
    """Apply the agent logging configuration."""
    logging.config.dictConfig(get_logging_config(level, token))
