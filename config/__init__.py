"""
Config module - Default settings and export column layouts.
"""

from .settings import (
    DEFAULT_SETTINGS,
    PROVIDER_NAME,
    GITHUB_GRAPHQL_URL,
    MAX_PAGE_SIZE,
    BASIC_COLUMNS,
    FULL_COLUMNS,
    BASIC_OUTPUT_FILE,
    FULL_OUTPUT_FILE,
)

__all__ = [
    'DEFAULT_SETTINGS',
    'PROVIDER_NAME',
    'GITHUB_GRAPHQL_URL',
    'MAX_PAGE_SIZE',
    'BASIC_COLUMNS',
    'FULL_COLUMNS',
    'BASIC_OUTPUT_FILE',
    'FULL_OUTPUT_FILE',
]
