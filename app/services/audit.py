from sqlalchemy.orm import Session

from app.models.entities import AuditLog, User


def actor_label(actor: User | str) -> str:
    if isinstance(actor, User):
        return f"{actor.role.value}:{actor.id}"
    return actor


def record_audit(
    db: Session, actor: User | str, action: str, entity_type: str, entity_id: int, payload: dict
) -> None:
    db.add(
        AuditLog(
            actor=actor_label(actor),
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            payload_json=payload,
        )
    )
