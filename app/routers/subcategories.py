# app/routers/subcategories.py
from app.core.auth import require_admin, require_staff
from app.routers.factory import build_crud_router
from app.schemas.category import SubCategoryCreate, SubCategoryUpdate
from app.services import resources
from app.services.resource_service import ResourceService

service = ResourceService(resources.subcategories)

router = build_crud_router(
    service,
    prefix="/subcategories",
    tags=["SubCategories"],
    create_schema=SubCategoryCreate,
    update_schema=SubCategoryUpdate,
    auth={
        "create": [require_staff],
        "update": [require_staff],
        "delete": [require_admin],
    },
)
