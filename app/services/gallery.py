from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.models.entities import GalleryItem, User
from app.schemas.common import GalleryItemCreate
from app.services.audit import record_audit


def list_items(db: Session) -> list[GalleryItem]:
    return db.query(GalleryItem).order_by(GalleryItem.created_at.desc(), GalleryItem.id.desc()).all()


def create_item(db: Session, actor: User, payload: GalleryItemCreate) -> GalleryItem:
    item = GalleryItem(
        image_url=str(payload.image_url),
        title=payload.title,
        description=payload.description,
        book_title=payload.book_title,
    )
    db.add(item)
    db.flush()
    record_audit(db, actor, "create", "gallery_item", item.id, payload.model_dump(mode="json"))
    return item


def delete_item(db: Session, actor: User, item_id: int) -> None:
    item = db.query(GalleryItem).filter(GalleryItem.id == item_id).one_or_none()
    if not item:
        raise HTTPException(status_code=404, detail="Gallery item not found")
    record_audit(db, actor, "delete", "gallery_item", item.id, {"image_url": item.image_url})
    db.delete(item)
