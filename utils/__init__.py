"""
Utilities package for Fridge Cookbook.

Contains configuration, logging, error types and shared helpers.
"""

from .config import Config, get_config, reload_config
from .logger import setup_logging, get_logger, log_operation
from .errors import (
    CookbookError, StorageError, RecipeNotFoundError, RecipeValidationError, ConfigurationError
)
from .concurrency import InFlightGuard

__all__ = [
    'Config',
    'get_config',
    'reload_config',
    'setup_logging',
    'get_logger',
    'log_operation',
    'CookbookError',
    'StorageError',
    'RecipeNotFoundError',
    'RecipeValidationError',
    'ConfigurationError',
    'InFlightGuard'
]
