"""
Audit Models for Household Expenses

Every mutation in the system, and every mutation that was refused, is
logged for audit purposes. This provides:
1. Traceability of who changed what in a shared household ledger
2. Debugging information when the remote store misbehaves
3. A record of refused edits (window expired, validation failed)

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Expenses
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"

    # Calendar entries
    ENTRY_CREATED = "entry_created"
    ENTRY_UPDATED = "entry_updated"
    ENTRY_DELETED = "entry_deleted"

    # Comment threads
    COMMENT_ADDED = "comment_added"
    COMMENT_EDITED = "comment_edited"
    COMMENT_DELETED = "comment_deleted"
    REPLY_ADDED = "reply_added"

    # Refused operations
    PERMISSION_DENIED = "permission_denied"
    VALIDATION_FAILED = "validation_failed"

    # Budget and summaries
    FULL_AMOUNT_UPDATED = "full_amount_updated"
    SUMMARY_DEGRADED = "summary_degraded"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'calendar_entry', 'comment')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events"
    )

    # Who did it (member name or phone), when known
    actor: Optional[str] = Field(
        default=None,
        max_length=100,
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "actor": self.actor,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, actor, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.actor or "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_created(expense_id, "150.00", "Rice", "Asha")
        event = AuditEventBuilder.permission_denied("comment", comment_id, reason)
    """

    @staticmethod
    def expense_created(
        expense_id: UUID,
        amount: str,
        category_id: str,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            entity_type="expense",
            entity_id=expense_id,
            actor=actor,
            description=f"Expense added: {category_id} - {amount}",
            details={
                "amount": amount,
                "category_id": category_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_updated(
        expense_id: UUID,
        changed_fields: list[str],
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            entity_type="expense",
            entity_id=expense_id,
            actor=actor,
            description=f"Expense updated: {', '.join(changed_fields) or 'no changes'}",
            details={"changed_fields": changed_fields},
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        expense_id: UUID,
        comment_count: int,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            actor=actor,
            description=f"Expense deleted with {comment_count} comment(s)",
            details={"comment_count": comment_count},
            is_user_action=True,
        )

    @staticmethod
    def entry_created(
        entry_id: UUID,
        entry_date: str,
        category_name: str,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_CREATED,
            entity_type="calendar_entry",
            entity_id=entry_id,
            actor=actor,
            description=f"Calendar entry added on {entry_date} ({category_name})",
            details={
                "date": entry_date,
                "category_name": category_name,
            },
            is_user_action=True,
        )

    @staticmethod
    def entry_updated(
        entry_id: UUID,
        changed_fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_UPDATED,
            entity_type="calendar_entry",
            entity_id=entry_id,
            description=f"Calendar entry updated: {', '.join(changed_fields) or 'no changes'}",
            details={"changed_fields": changed_fields},
            is_user_action=True,
        )

    @staticmethod
    def entry_deleted(entry_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_DELETED,
            entity_type="calendar_entry",
            entity_id=entry_id,
            description="Calendar entry deleted",
            is_user_action=True,
        )

    @staticmethod
    def comment_added(
        comment_id: UUID,
        parent_type: str,
        parent_id: UUID,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMENT_ADDED,
            entity_type="comment",
            entity_id=comment_id,
            actor=actor,
            description=f"Comment added to {parent_type}",
            details={
                "parent_type": parent_type,
                "parent_id": str(parent_id),
            },
            is_user_action=True,
        )

    @staticmethod
    def comment_edited(comment_id: UUID, parent_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMENT_EDITED,
            entity_type="comment",
            entity_id=comment_id,
            description="Comment edited",
            details={"parent_id": str(parent_id)},
            is_user_action=True,
        )

    @staticmethod
    def comment_deleted(
        comment_id: UUID,
        parent_id: UUID,
        reply_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMENT_DELETED,
            entity_type="comment",
            entity_id=comment_id,
            description=f"Comment deleted with {reply_count} repl(ies)",
            details={
                "parent_id": str(parent_id),
                "reply_count": reply_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def reply_added(
        reply_id: UUID,
        comment_id: UUID,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPLY_ADDED,
            entity_type="reply",
            entity_id=reply_id,
            actor=actor,
            description="Reply added to comment",
            details={"comment_id": str(comment_id)},
            is_user_action=True,
        )

    @staticmethod
    def permission_denied(
        entity_type: str,
        entity_id: Optional[UUID],
        reason: str,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERMISSION_DENIED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            actor=actor,
            description=f"Change to {entity_type} refused",
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        reason: str,
        entity_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Invalid {entity_type} input rejected",
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def full_amount_updated(
        old_amount: str,
        new_amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FULL_AMOUNT_UPDATED,
            entity_type="budget",
            description=f"Full amount changed from {old_amount} to {new_amount}",
            details={
                "old_amount": old_amount,
                "new_amount": new_amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def summary_degraded(
        month: int,
        year: int,
        source: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUMMARY_DEGRADED,
            severity=AuditSeverity.WARNING,
            entity_type="summary",
            description=f"Summary for {month:02d}/{year} built without {source}",
            error_message=error_message,
            details={
                "month": month,
                "year": year,
                "source": source,
            },
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
        )
