# app/routers/products.py
import uuid

from fastapi import Depends, File, UploadFile
from sqlmodel import Session

from app.core.auth import require_admin, require_staff
from app.core.errors import BadRequestError
from app.core.image_utils import PRODUCT_IMAGE
from app.database import get_session
from app.routers.factory import build_crud_router
from app.schemas.product import ProductCreate, ProductUpdate
from app.services import resources
from app.services.image_service import ImageService
from app.services.resource_service import ResourceService

service = ResourceService(resources.products)
image_service = ImageService()

# -------- Public reads, staff writes --------

router = build_crud_router(
    service,
    prefix="/products",
    tags=["Products"],
    create_schema=ProductCreate,
    update_schema=ProductUpdate,
    auth={
        "create": [require_staff],
        "update": [require_staff],
        "delete": [require_admin],
    },
    populate_on_get=True,
)


@router.put(
    "/{product_id}/images",
    dependencies=[Depends(require_staff)],
    summary="Upload the cover image and/or gallery images of a product",
)
def upload_product_images(
    product_id: uuid.UUID,
    image_cover: UploadFile | None = File(default=None),
    images: list[UploadFile] | None = File(default=None),
    session: Session = Depends(get_session),
):
    """
    Upload product images (staff only).

    - `image_cover`: single file, replaces the current cover.
    - `images`: up to 5 files, replace the current gallery.
    - Everything is resized to 2000x1333 JPEG.
    """
    gallery = images or []
    if image_cover is None and not gallery:
        raise BadRequestError("No files uploaded")
    if len(gallery) > 5:
        raise BadRequestError("At most 5 gallery images are allowed")

    data = image_service.set_product_images(
        session,
        service,
        product_id,
        cover=(image_cover.content_type, image_cover.file.read()) if image_cover else None,
        gallery=[(f.content_type, f.file.read()) for f in gallery],
        size=PRODUCT_IMAGE,
    )
    return {"data": data, "message": "Product images updated successfully"}
