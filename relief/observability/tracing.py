# SPDX-License-Identifier: Apache-2.0

"""
Span helpers shared by the core services.
"""

import logging
from typing import Any

from opentelemetry import trace

from relief.errors import ReliefError


def record_rejection(span, logger: logging.Logger, operation: str, error: ReliefError, **context: Any) -> None:
    """Mark the span failed and log a rejected operation at WARNING."""
    span.record_exception(error)
    span.set_status(trace.Status(trace.StatusCode.ERROR, error.message))
    span.set_attribute("error.type", error.error_type)
    logger.warning(
        f"{operation} rejected: {error.message}",
        extra={
            "operation": operation,
            "error_type": error.error_type,
            "status_code": error.status_code,
            **context
        }
    )
