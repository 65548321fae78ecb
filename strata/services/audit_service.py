"""Audit service for logging levy, payment and budget lifecycle events."""

from sqlalchemy.orm import Session

from strata.models.audit_log import AuditLog


class AuditService:
    """Service for audit log operations."""

    @staticmethod
    def log(
        db: Session,
        entity_type: str,
        entity_id: int,
        action: str,
        actor_id: int | None = None,
        changes: dict | None = None,
    ) -> AuditLog:
        """Add an audit log entry to the current unit of work.

        The entry is committed (or rolled back) with the caller's transaction.

        Args:
            db: Database session
            entity_type: Type of entity ("levy_schedule", "payment", "budget")
            entity_id: Primary key of the entity
            action: Action performed ("create", "approve", "deactivate")
            actor_id: User who performed the action (optional)
            changes: Optional JSON-serialisable snapshot of changed fields

        Returns:
            Created AuditLog object
        """
        audit = AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor_id=actor_id,
            changes=changes,
        )
        db.add(audit)
        return audit


__all__ = ["AuditService"]
