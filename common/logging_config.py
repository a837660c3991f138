"""Logging setup shared by ingestor components."""

import logging
import os
import re
import sys
from typing import Optional

MASK = '***MASKED***'

# Keys whose values never reach the log, e.g. the extractor API key
SENSITIVE_KEYS = ('api[_-]?key', 'token', 'authorization', 'secret')


class SensitiveDataFilter(logging.Filter):
    """Mask credentials in log messages and their arguments."""

    KEY_VALUE = re.compile(
        r'((?:%s)["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)' % '|'.join(SENSITIVE_KEYS),
        re.IGNORECASE
    )
    BEARER = re.compile(r'(bearer\s+)([^\s,}\'"]+)', re.IGNORECASE)

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self.mask(record.msg)

        if isinstance(record.args, dict):
            record.args = {key: self.mask(value) for key, value in record.args.items()}
        elif isinstance(record.args, tuple):
            record.args = tuple(self.mask(arg) for arg in record.args)

        return True

    @classmethod
    def mask(cls, value):
        if not isinstance(value, str):
            return value
        value = cls.BEARER.sub(rf'\1{MASK}', value)
        return cls.KEY_VALUE.sub(rf'\1{MASK}', value)


def setup_logging(component_name: str, log_level: Optional[str] = None) -> logging.Logger:
    """
    Set up logging for a top-level component.

    Module loggers created with get_logger() under the component's
    namespace inherit this handler.
    
    Args:
        component_name: Root logger name of the component (e.g., 'ingestor')
        log_level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL env var or INFO
        
    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
    
    level = getattr(logging, log_level, logging.INFO)
    
    logger = logging.getLogger(component_name)
    logger.setLevel(level)
    
    if logger.handlers:
        return logger
    
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    handler.addFilter(SensitiveDataFilter())
    
    logger.addHandler(handler)
    logger.propagate = False
    
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name.
    
    Args:
        name: Logger name (typically __name__)
        
    Returns:
        Logger instance
    """
    return logging.getLogger(name)
