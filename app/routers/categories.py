# app/routers/categories.py
import uuid

from fastapi import Depends, File, UploadFile
from sqlmodel import Session

from app.core.auth import require_admin, require_staff
from app.core.image_utils import CATEGORY_IMAGE
from app.database import get_session
from app.routers.factory import build_crud_router
from app.schemas.category import (
    CategoryCreate,
    CategoryUpdate,
    SubCategoryCreate,
)
from app.services import resources
from app.services.image_service import ImageService
from app.services.resource_service import ResourceService

service = ResourceService(resources.categories)
subcategory_service = ResourceService(resources.subcategories)
image_service = ImageService()

router = build_crud_router(
    service,
    prefix="/categories",
    tags=["Categories"],
    create_schema=CategoryCreate,
    update_schema=CategoryUpdate,
    auth={
        "create": [require_staff],
        "update": [require_staff],
        "delete": [require_admin],
    },
)

# /categories/{category_id}/subcategories
nested_subcategories = build_crud_router(
    subcategory_service,
    prefix="/{category_id}/subcategories",
    tags=["SubCategories"],
    create_schema=SubCategoryCreate,
    auth={"create": [require_staff]},
    operations=("list", "get", "create"),
    parent_param="category_id",
)


@router.put(
    "/{category_id}/image",
    dependencies=[Depends(require_staff)],
    summary="Upload or replace the category image",
)
def upload_category_image(
    category_id: uuid.UUID,
    image: UploadFile = File(...),
    session: Session = Depends(get_session),
):
    """
    Resize to 600x600 JPEG and store under categories/.
    """
    data = image_service.set_image(
        session,
        service,
        category_id,
        field="image",
        upload=(image.content_type, image.file.read()),
        size=CATEGORY_IMAGE,
        prefix="category",
    )
    return {"data": data, "message": "Category image updated successfully"}


router.include_router(nested_subcategories)
