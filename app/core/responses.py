from typing import Any


def _envelope(data: Any = None, error: dict | None = None, meta: dict | None = None) -> dict:
    return {"data": data, "error": error, "meta": meta or {}}


def success_response(data: Any, meta: dict | None = None) -> dict:
    return _envelope(data=data, meta=meta)


def page_meta(limit: int, offset: int, total: int, **extra: Any) -> dict:
    """Pagination block for list endpoints; extra keys (e.g. status counts) ride along."""
    return {"limit": limit, "offset": offset, "total": total, **extra}


def error_response(
    code: str, message: str, trace_id: str, status: int = 400, details: dict | None = None
) -> tuple[dict, int]:
    error = {"code": code, "message": message, "trace_id": trace_id, "details": details or {}}
    return _envelope(error=error), status
