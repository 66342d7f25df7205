# app/routers/brands.py
import uuid

from fastapi import Depends, File, UploadFile
from sqlmodel import Session

from app.core.auth import require_admin, require_staff
from app.core.image_utils import BRAND_IMAGE
from app.database import get_session
from app.routers.factory import build_crud_router
from app.schemas.brand import BrandCreate, BrandUpdate
from app.services import resources
from app.services.image_service import ImageService
from app.services.resource_service import ResourceService

service = ResourceService(resources.brands)
image_service = ImageService()

router = build_crud_router(
    service,
    prefix="/brands",
    tags=["Brands"],
    create_schema=BrandCreate,
    update_schema=BrandUpdate,
    auth={
        "create": [require_staff],
        "update": [require_staff],
        "delete": [require_admin],
    },
)


@router.put(
    "/{brand_id}/image",
    dependencies=[Depends(require_staff)],
    summary="Upload or replace the brand logo",
)
def upload_brand_image(
    brand_id: uuid.UUID,
    image: UploadFile = File(...),
    session: Session = Depends(get_session),
):
    data = image_service.set_image(
        session,
        service,
        brand_id,
        field="image",
        upload=(image.content_type, image.file.read()),
        size=BRAND_IMAGE,
        prefix="brand",
    )
    return {"data": data, "message": "Brand image updated successfully"}
