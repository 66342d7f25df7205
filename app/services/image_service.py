import logging
import uuid

from sqlmodel import Session

from app.core.image_utils import resize_image, validate_image_upload
from app.services.resource_service import ResourceService

logger = logging.getLogger(__name__)

# (content_type, file_bytes) of one uploaded file
Upload = tuple[str | None, bytes]


class ImageService:
    """
    Attach resized uploads to entities.

    Responsibilities:
      - validate content type + size
      - resize / re-encode to JPEG and store under the entity's folder
      - keep only the stored filename on the row (URLs are derived on read)
    """

    def set_image(
        self,
        session: Session,
        service: ResourceService,
        item_id: uuid.UUID,
        *,
        field: str,
        upload: Upload,
        size: tuple[int, int, int],
        prefix: str,
    ) -> dict:
        """
        Replace the single image stored in `field`.
        """
        obj = service.get_instance(session, item_id)
        content_type, file_bytes = upload
        validate_image_upload(content_type, file_bytes)

        width, height, quality = size
        folder = service.resource.image_fields[field]
        filename = resize_image(
            file_bytes, width, height, quality, folder=folder, prefix=prefix
        )

        setattr(obj, field, filename)
        session.add(obj)
        session.commit()
        session.refresh(obj)
        logger.info("Stored %s image %s/%s", service.resource.name, folder, filename)
        return service.resource.serialize(obj)

    def set_product_images(
        self,
        session: Session,
        service: ResourceService,
        product_id: uuid.UUID,
        *,
        cover: Upload | None,
        gallery: list[Upload],
        size: tuple[int, int, int],
    ) -> dict:
        """
        Store the cover image and/or gallery images of a product.

        Rules:
          - a new cover replaces the previous one
          - a non-empty gallery upload replaces the previous gallery;
            files are suffixed with their 1-based position
        """
        product = service.get_instance(session, product_id)
        width, height, quality = size

        uploads = ([cover] if cover else []) + gallery
        for content_type, file_bytes in uploads:
            validate_image_upload(content_type, file_bytes)

        if cover:
            product.image_cover = resize_image(
                cover[1], width, height, quality,
                folder="products", prefix="product", suffix="cover",
            )

        if gallery:
            product.images = [
                resize_image(
                    file_bytes, width, height, quality,
                    folder="products", prefix="product", suffix=str(index + 1),
                )
                for index, (_, file_bytes) in enumerate(gallery)
            ]

        session.add(product)
        session.commit()
        session.refresh(product)
        return service.resource.serialize(product)
