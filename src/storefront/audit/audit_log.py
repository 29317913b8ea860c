"""AuditLog aggregate — append-only record of who changed what.

Rows are written by the same handler that makes the change, so an audit row
exists exactly when the change committed.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront


class AuditAction(Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    STATUS_CHANGE = "status_change"
    STOCK_ADJUSTMENT = "stock_adjustment"
    PAYMENT_VERIFIED = "payment_verified"
    PAYMENT_REJECTED = "payment_rejected"
    REQUEST_RETURN = "request_return"
    APPROVE_RETURN = "approve_return"
    REJECT_RETURN = "reject_return"
    PROCESS_REFUND = "process_refund"
    PASSWORD_CHANGE = "password_change"


class AuditEntityType(Enum):
    ORDER = "order"
    PRODUCT = "product"
    VARIANT = "variant"
    PAYMENT = "payment"
    RETURN = "return"
    SHIFT = "shift"
    USER = "user"


@storefront.aggregate
class AuditLog:
    user_id = Identifier()
    action = String(required=True, max_length=50)
    entity_type = String(required=True, max_length=50)
    entity_id = Identifier()
    old_value = Text()  # JSON
    new_value = Text()  # JSON
    ip_address = String(max_length=64)
    created_at = DateTime()

    @classmethod
    def entry(cls, action, entity_type, entity_id=None, user_id=None, old_value=None, new_value=None, ip_address=None):
        return cls(
            user_id=user_id,
            action=action.value if isinstance(action, Enum) else action,
            entity_type=entity_type.value if isinstance(entity_type, Enum) else entity_type,
            entity_id=str(entity_id) if entity_id else None,
            old_value=json.dumps(old_value, default=str) if old_value is not None else None,
            new_value=json.dumps(new_value, default=str) if new_value is not None else None,
            ip_address=ip_address,
            created_at=datetime.now(UTC),
        )

    def to_dict_view(self) -> dict:
        return {
            "id": str(self.id),
            "user_id": str(self.user_id) if self.user_id else None,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "old_value": json.loads(self.old_value) if self.old_value else None,
            "new_value": json.loads(self.new_value) if self.new_value else None,
            "ip_address": self.ip_address,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@storefront.repository(part_of=AuditLog)
class AuditLogRepository:
    def for_entity(self, entity_type: str, entity_id: str) -> list:
        return (
            self._dao.query.filter(entity_type=entity_type, entity_id=str(entity_id))
            .order_by("-created_at")
            .all()
            .items
        )

    def page(self, page: int, page_size: int):
        return self._dao.query.order_by("-created_at").offset((page - 1) * page_size).limit(page_size).all()


def record_audit(action, entity_type, entity_id=None, user_id=None, old_value=None, new_value=None, ip_address=None):
    """Append an audit row to the current unit of work."""
    log = AuditLog.entry(
        action,
        entity_type,
        entity_id=entity_id,
        user_id=user_id,
        old_value=old_value,
        new_value=new_value,
        ip_address=ip_address,
    )
    current_domain.repository_for(AuditLog).add(log)
    return log
