"""
Audit Logger

DESIGN DECISION: Every mutation in the system is logged, and so is every
mutation that was refused. This provides:
1. Complete traceability of who changed what
2. Debugging capability when the remote store misbehaves
3. A visible record of why an edit was refused

The audit logger:
- Is async so it fits the store methods that call it
- Gracefully handles failures (doesn't crash the app if logging fails)
"""

from typing import Optional
from uuid import UUID

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder
from src.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (Google Sheets in production, in-memory offline)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    @property
    def has_storage(self) -> bool:
        return self._storage is not None

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    # =========================================================================
    # EXPENSES
    # =========================================================================

    async def log_expense_created(
        self,
        expense_id: UUID,
        amount: str,
        category_id: str,
        actor: Optional[str] = None,
    ) -> None:
        event = AuditEventBuilder.expense_created(
            expense_id=expense_id,
            amount=amount,
            category_id=category_id,
            actor=actor,
        )
        await self.log(event)

    async def log_expense_updated(
        self,
        expense_id: UUID,
        changed_fields: list[str],
        actor: Optional[str] = None,
    ) -> None:
        event = AuditEventBuilder.expense_updated(
            expense_id=expense_id,
            changed_fields=changed_fields,
            actor=actor,
        )
        await self.log(event)

    async def log_expense_deleted(
        self,
        expense_id: UUID,
        comment_count: int,
        actor: Optional[str] = None,
    ) -> None:
        event = AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            comment_count=comment_count,
            actor=actor,
        )
        await self.log(event)

    # =========================================================================
    # CALENDAR ENTRIES
    # =========================================================================

    async def log_entry_created(
        self,
        entry_id: UUID,
        entry_date: str,
        category_name: str,
        actor: Optional[str] = None,
    ) -> None:
        event = AuditEventBuilder.entry_created(
            entry_id=entry_id,
            entry_date=entry_date,
            category_name=category_name,
            actor=actor,
        )
        await self.log(event)

    async def log_entry_updated(
        self,
        entry_id: UUID,
        changed_fields: list[str],
    ) -> None:
        await self.log(AuditEventBuilder.entry_updated(entry_id, changed_fields))

    async def log_entry_deleted(self, entry_id: UUID) -> None:
        await self.log(AuditEventBuilder.entry_deleted(entry_id))

    # =========================================================================
    # COMMENTS
    # =========================================================================

    async def log_comment_added(
        self,
        comment_id: UUID,
        parent_type: str,
        parent_id: UUID,
        actor: Optional[str] = None,
    ) -> None:
        event = AuditEventBuilder.comment_added(
            comment_id=comment_id,
            parent_type=parent_type,
            parent_id=parent_id,
            actor=actor,
        )
        await self.log(event)

    async def log_comment_edited(self, comment_id: UUID, parent_id: UUID) -> None:
        await self.log(AuditEventBuilder.comment_edited(comment_id, parent_id))

    async def log_comment_deleted(
        self,
        comment_id: UUID,
        parent_id: UUID,
        reply_count: int,
    ) -> None:
        event = AuditEventBuilder.comment_deleted(
            comment_id=comment_id,
            parent_id=parent_id,
            reply_count=reply_count,
        )
        await self.log(event)

    async def log_reply_added(
        self,
        reply_id: UUID,
        comment_id: UUID,
        actor: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.reply_added(reply_id, comment_id, actor))

    # =========================================================================
    # REFUSALS
    # =========================================================================

    async def log_permission_denied(
        self,
        entity_type: str,
        entity_id: Optional[UUID],
        reason: str,
        actor: Optional[str] = None,
    ) -> None:
        """Log an edit or delete that the policy refused."""
        event = AuditEventBuilder.permission_denied(
            entity_type=entity_type,
            entity_id=entity_id,
            reason=reason,
            actor=actor,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        entity_type: str,
        reason: str,
        entity_id: Optional[UUID] = None,
    ) -> None:
        """Log rejected input."""
        event = AuditEventBuilder.validation_failed(
            entity_type=entity_type,
            reason=reason,
            entity_id=entity_id,
        )
        await self.log(event)

    # =========================================================================
    # BUDGET / SUMMARIES
    # =========================================================================

    async def log_full_amount_updated(self, old_amount: str, new_amount: str) -> None:
        await self.log(AuditEventBuilder.full_amount_updated(old_amount, new_amount))

    async def log_summary_degraded(
        self,
        month: int,
        year: int,
        source: str,
        error_message: str,
    ) -> None:
        """Log that a summary fell back to a default for one of its inputs."""
        event = AuditEventBuilder.summary_degraded(
            month=month,
            year=year,
            source=source,
            error_message=error_message,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
        )
        await self.log(event)
