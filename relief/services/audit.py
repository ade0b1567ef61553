# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Audit service for append-only action logging with OpenTelemetry correlation.
"""

import logging
from typing import List, Optional, Union
from opentelemetry import trace

from relief.models.entities import AuditLog
from relief.models.enums import AuditAction
from .store import ReliefStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class AuditRecorder:
    """Append-only audit trail over the configured store."""

    def __init__(self, store: ReliefStore):
        """Initialize audit recorder with store dependency."""
        self.store = store
        logger.info("Audit recorder initialized")

    def append(
        self,
        actor_id: str,
        action: Union[AuditAction, str],
        detail: str,
        barangay_id: Optional[str] = None,
        entity_id: Optional[str] = None
    ) -> Optional[AuditLog]:
        """
        Append an audit trail entry with trace correlation and structured logging.

        Failures are logged and never propagate to the operation being audited.

        Args:
            actor_id: ID of user performing the action
            action: Action tag
            detail: Human-readable detail
            barangay_id: Barangay scope (optional)
            entity_id: ID of the affected entity (optional)

        Returns:
            AuditLog: The stored entry, or None if it could not be stored
        """
        action = action.value if isinstance(action, AuditAction) else str(action)

        with tracer.start_as_current_span("audit.append") as span:
            try:
                # Get current span context for trace correlation
                span_context = span.get_span_context()

                entry = AuditLog(
                    actor_id=actor_id,
                    action=action,
                    detail=detail,
                    barangay_id=barangay_id,
                    entity_id=entity_id
                )

                # Add trace correlation if available
                if span_context.is_valid:
                    entry.trace_id = format(span_context.trace_id, "032x")
                    entry.span_id = format(span_context.span_id, "016x")

                span.set_attributes({
                    "audit.action": action,
                    "audit.actor_id": actor_id,
                    "audit.barangay_id": barangay_id or "",
                    "audit.entity_id": entity_id or ""
                })

                self.store.insert_audit_log(entry)

                logger.info(
                    "Audit trail entry created",
                    extra={
                        "audit_id": entry.id,
                        "action": action,
                        "actor_id": actor_id,
                        "barangay_id": barangay_id,
                        "entity_id": entity_id,
                        "trace_id": entry.trace_id,
                        "audit_category": "business_action"
                    }
                )

                return entry

            except Exception as e:
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                logger.error(
                    "Failed to create audit trail entry",
                    extra={
                        "action": action,
                        "actor_id": actor_id,
                        "barangay_id": barangay_id,
                        "entity_id": entity_id,
                        "error": str(e)
                    },
                    exc_info=True
                )
                return None

    def query(
        self,
        barangay_id: Optional[str] = None,
        action: Optional[Union[AuditAction, str]] = None,
        actor_id: Optional[str] = None,
        limit: int = 100
    ) -> List[AuditLog]:
        """
        Query audit entries, newest first.

        Args:
            barangay_id: Barangay scope (optional)
            action: Action tag filter (optional)
            actor_id: Actor filter (optional)
            limit: Maximum number of entries

        Returns:
            List[AuditLog]: Matching entries
        """
        if isinstance(action, AuditAction):
            action = action.value

        with tracer.start_as_current_span("audit.query") as span:
            try:
                span.set_attributes({
                    "audit.query.barangay_id": barangay_id or "",
                    "audit.query.action": action or "",
                    "audit.query.limit": limit
                })

                entries = self.store.list_audit_logs(
                    barangay_id=barangay_id,
                    action=action,
                    actor_id=actor_id,
                    limit=limit
                )

                logger.info(
                    "Audit logs queried successfully",
                    extra={
                        "barangay_id": barangay_id,
                        "action": action,
                        "returned_items": len(entries)
                    }
                )

                return entries

            except Exception as e:
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                logger.error(
                    "Failed to query audit logs",
                    extra={
                        "barangay_id": barangay_id,
                        "action": action,
                        "error": str(e)
                    },
                    exc_info=True
                )
                raise
