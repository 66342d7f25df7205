# app/routers/coupons.py
from app.core.auth import require_staff
from app.routers.factory import build_crud_router
from app.schemas.coupon import CouponCreate, CouponUpdate
from app.services import resources
from app.services.resource_service import ResourceService

service = ResourceService(resources.coupons)

# Coupons are staff-only on every operation
router = build_crud_router(
    service,
    prefix="/coupons",
    tags=["Coupons"],
    create_schema=CouponCreate,
    update_schema=CouponUpdate,
    auth={op: [require_staff] for op in ("list", "get", "create", "update", "delete")},
)
