"""Shared utilities for API v1 endpoints.

This package provides the dependency providers, query validation and error
handling used across the endpoint modules.
"""

from transit_insights.api.v1.shared.errors import (
    error_response,
    install_exception_handlers,
)
from transit_insights.api.v1.shared.validation import (
    etag_for,
    parse_if_match,
    report_criteria,
)

__all__ = [
    "error_response",
    "install_exception_handlers",
    "etag_for",
    "parse_if_match",
    "report_criteria",
]
