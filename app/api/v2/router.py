from fastapi import APIRouter
from app.api.v2 import (
    work_orders,
    work_order_photos,
    closure_motives,
    gps_tracking,
)

api_router = APIRouter()

# Include all v2 routers
api_router.include_router(work_orders.router, prefix="/orders", tags=["order-execution"])
api_router.include_router(work_order_photos.router, prefix="/orders", tags=["evidence"])
api_router.include_router(closure_motives.router, prefix="/closure-motives", tags=["closure-motives"])
api_router.include_router(gps_tracking.router)
