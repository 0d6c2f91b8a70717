from pathlib import Path

from PIL import Image, UnidentifiedImageError

from parte.extraction.bbox import apply_border_padding, is_valid_bbox
from parte.extraction.models import BoundingBox
from parte.logging.logger import Log
from parte.media.storage import MediaStore

MIN_PORTRAIT_PX = 50
MAX_PORTRAIT_PX = 400
PORTRAIT_JPEG_QUALITY = 85


class PortraitExtractor:
    """Crops the deceased's photo out of a parte image."""

    def __init__(self, media_store: MediaStore) -> None:
        self._media_store = media_store

    def extract(self, image_path: Path, bbox: BoundingBox) -> Path | None:
        """Crop ``bbox`` from the image into a temp JPEG owned by the caller.

        Returns None for invalid boxes, missing images and crops smaller
        than 50 px on either side.
        """
        if not is_valid_bbox(bbox):
            Log.warning("Invalid bounding box provided for portrait extraction", bbox=bbox)
            return None
        if not image_path.is_file():
            Log.warning(f"Image file does not exist for portrait extraction: {image_path}")
            return None

        padded = apply_border_padding(bbox)
        try:
            with Image.open(image_path) as image:
                image.load()
                portrait = self._crop(image.convert("RGB"), padded)
        except (UnidentifiedImageError, OSError) as exc:
            Log.error(f"Portrait extraction failed: {exc}", image_path=str(image_path))
            return None
        if portrait is None:
            return None

        output = self._media_store.temp_path("portrait_", ".jpg")
        try:
            portrait.save(output, "JPEG", quality=PORTRAIT_JPEG_QUALITY)
        except OSError as exc:
            Log.error(f"Cannot save portrait: {exc}")
            self._media_store.discard(output)
            return None
        Log.info("Portrait extracted", source=image_path.name, size=portrait.size)
        return output

    @staticmethod
    def _crop(image: Image.Image, bbox: BoundingBox) -> Image.Image | None:
        width_px, height_px = image.size
        left = int(bbox.x_percent / 100 * width_px)
        top = int(bbox.y_percent / 100 * height_px)
        width = min(int(bbox.width_percent / 100 * width_px), width_px - left)
        height = min(int(bbox.height_percent / 100 * height_px), height_px - top)

        if width < MIN_PORTRAIT_PX or height < MIN_PORTRAIT_PX:
            Log.warning("Portrait region too small after calculation", width=width, height=height)
            return None

        portrait = image.crop((left, top, left + width, top + height))
        portrait.thumbnail((MAX_PORTRAIT_PX, MAX_PORTRAIT_PX))
        return portrait
