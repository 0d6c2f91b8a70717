from pathlib import Path

import pymupdf
from PIL import Image

from parte.media.exceptions import ConversionError


class PdfRenderer:
    """Rasterises PDF pages with PyMuPDF."""

    def __init__(self, dpi: int = 300, jpeg_quality: int = 90) -> None:
        self._dpi = dpi
        self._jpeg_quality = jpeg_quality

    def render_image(self, pdf_path: Path, page_number: int = 0) -> Image.Image:
        """Render one page to an RGB Pillow image.

        Raises:
            ConversionError: if the PDF cannot be opened or has no such page.
        """
        try:
            with pymupdf.open(pdf_path) as doc:  # type: ignore[no-untyped-call]
                if page_number >= doc.page_count:
                    raise ConversionError(
                        f"{pdf_path} has {doc.page_count} pages, cannot render page {page_number}"
                    )
                pixmap = doc[page_number].get_pixmap(dpi=self._dpi, alpha=False)
                return Image.frombytes("RGB", (pixmap.width, pixmap.height), pixmap.samples)
        except ConversionError:
            raise
        except Exception as exc:
            raise ConversionError(f"pymupdf rendering failed for {pdf_path}: {exc}") from exc

    def render_page(self, pdf_path: Path, output_path: Path, page_number: int = 0) -> Path:
        """Render a page to JPEG at ``output_path``.

        Raises:
            ConversionError: on any rendering or write failure.
        """
        image = self.render_image(pdf_path, page_number)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            image.save(output_path, "JPEG", quality=self._jpeg_quality)
        except OSError as exc:
            raise ConversionError(f"Cannot write rendered page to {output_path}: {exc}") from exc
        return output_path
