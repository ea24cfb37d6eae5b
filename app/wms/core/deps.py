from fastapi import Request

from app.wms.core.context import RequestContext, get_request_context
from app.wms.core.error_catalog import AppError, ErrorCatalog


def require_actor(request: Request) -> RequestContext:
    context = get_request_context(request)
    if not context.user_id:
        raise AppError(ErrorCatalog.ACTOR_REQUIRED)
    return context


__all__ = ["require_actor", "get_request_context"]
