from fastapi import APIRouter

from app.wms.core.config import settings
from app.wms.routers.inventory import router as inventory_router
from app.wms.routers.ops import metrics_router
from app.wms.routers.ops import router as ops_router
from app.wms.routers.stock_in import router as stock_in_router
from app.wms.routers.stock_out import router as stock_out_router

api_router = APIRouter()
api_router.include_router(ops_router, tags=["ops"])
api_router.include_router(stock_in_router, tags=["stock-in"])
api_router.include_router(stock_out_router, tags=["stock-out"])
api_router.include_router(inventory_router, tags=["inventory"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])
