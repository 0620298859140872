from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session
from starlette.responses import Response

from app.core.auth import require_admin
from app.core.responses import success_response
from app.db.session import get_db
from app.models.entities import User
from app.schemas import AdminStatsOut, GalleryItemCreate, GalleryItemOut, HomeStatsOut, PageViewRequest
from app.services import gallery, stats
from app.services.idempotency import resolve_cached_response, store_response
from app.services.sitemap import build_sitemap

router = APIRouter(prefix="/v1", tags=["site"])
public_router = APIRouter(tags=["site"])


@router.get("/gallery")
def list_gallery(db: Session = Depends(get_db)):
    items = gallery.list_items(db)
    return success_response([GalleryItemOut.model_validate(item).model_dump(mode="json") for item in items])


@router.post("/gallery", status_code=201)
def create_gallery_item(
    payload: GalleryItemCreate,
    idempotency_key: str = Header(alias="Idempotency-Key"),
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin),
):
    body = payload.model_dump(mode="json")
    cached = resolve_cached_response(db, idempotency_key, "/v1/gallery", actor, body)
    if cached:
        return success_response(cached)

    item = gallery.create_item(db, actor, payload)
    response = GalleryItemOut.model_validate(item).model_dump(mode="json")
    store_response(db, idempotency_key, "/v1/gallery", actor, body, response)
    db.commit()
    return success_response(response)


@router.delete("/gallery/{item_id}")
def delete_gallery_item(item_id: int, db: Session = Depends(get_db), actor: User = Depends(require_admin)):
    gallery.delete_item(db, actor, item_id)
    db.commit()
    return success_response({"id": item_id, "deleted": True})


@router.post("/page-views")
def track_page_view(payload: PageViewRequest, db: Session = Depends(get_db)):
    views = stats.record_page_view(db, payload.page)
    db.commit()
    return success_response({"page": payload.page, "views": views})


@router.get("/stats/home")
def home_stats(response: Response, db: Session = Depends(get_db)):
    response.headers["Cache-Control"] = "no-store"
    payload = HomeStatsOut(**stats.home_stats(db))
    return success_response(payload.model_dump())


@router.get("/admin/stats")
def admin_stats(db: Session = Depends(get_db), actor: User = Depends(require_admin)):
    payload = AdminStatsOut(**stats.admin_stats(db))
    return success_response(payload.model_dump())


@public_router.get("/sitemap.xml")
def sitemap(db: Session = Depends(get_db)) -> Response:
    return Response(build_sitemap(db), media_type="application/xml")
