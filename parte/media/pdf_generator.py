"""Produces the canonical A4 PDF artifact for a notice."""

import io
import shutil
import time
from collections.abc import Callable
from pathlib import Path
from urllib.parse import urlparse

import httpx
import pymupdf
from PIL import Image, UnidentifiedImageError

from parte.logging.logger import Log
from parte.media.exceptions import ConversionError, DownloadError
from parte.media.pdf_renderer import PdfRenderer
from parte.media.storage import MediaStore

A4_WIDTH_PX = 2480
A4_HEIGHT_PX = 3508
PDF_JPEG_QUALITY = 85
MM_TO_PT = 72 / 25.4


class PdfGenerator:
    """Image -> PDF, HTML -> PDF and download-then-convert with retries."""

    def __init__(
        self,
        media_store: MediaStore,
        renderer: PdfRenderer | None = None,
        http_client: httpx.Client | None = None,
        timeout_seconds: int = 30,
        user_agent: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._media_store = media_store
        self._renderer = renderer or PdfRenderer()
        headers = {"User-Agent": user_agent} if user_agent else None
        self._http = http_client or httpx.Client(
            timeout=timeout_seconds, headers=headers, follow_redirects=True
        )
        self._sleep = sleep

    def convert_image_to_pdf(
        self, image_path: Path, output_path: Path, source_page: int = 0
    ) -> bool:
        """Place an image on an A4 page, scaled to fit, centred and top-aligned.

        PDF inputs are rasterised from ``source_page``. Returns False and
        leaves no output file when the input is missing or unreadable.
        """
        if not image_path.is_file():
            Log.error(f"Image to convert not found: {image_path}")
            return False
        try:
            source = self._load_source(image_path, source_page)
            page_jpeg = self._compose_a4(source)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with pymupdf.open() as doc:  # type: ignore[no-untyped-call]
                page = doc.new_page(**self._a4_points())
                page.insert_image(page.rect, stream=page_jpeg)
                doc.save(str(output_path))
        except (ConversionError, UnidentifiedImageError, OSError, ValueError, RuntimeError) as exc:
            Log.error(f"Image to PDF conversion failed for {image_path}: {exc}")
            output_path.unlink(missing_ok=True)
            return False
        Log.info(f"Converted {image_path.name} to PDF", output=str(output_path))
        return True

    def convert_html_to_pdf(self, html: str, output_path: Path, margin_mm: float = 20) -> bool:
        """Lay out an HTML document onto as many A4 pages as it needs."""
        output_path.parent.mkdir(parents=True, exist_ok=True)
        margin = margin_mm * MM_TO_PT
        mediabox = pymupdf.paper_rect("a4")
        content_area = mediabox + (margin, margin, -margin, -margin)
        try:
            story = pymupdf.Story(html=html)
            writer = pymupdf.DocumentWriter(str(output_path))
            more = True
            while more:
                device = writer.begin_page(mediabox)
                more, _ = story.place(content_area)
                story.draw(device)
                writer.end_page()
            writer.close()
        except (RuntimeError, ValueError, OSError) as exc:
            Log.error(f"HTML to PDF conversion failed: {exc}", output=str(output_path))
            output_path.unlink(missing_ok=True)
            return False
        return True

    def download(self, url: str, destination: Path, max_retries: int = 3) -> Path:
        """Fetch ``url`` into ``destination``.

        Raises:
            DownloadError: when every attempt fails.
        """
        content = self._fetch(url, max_retries)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(content)
        return destination

    def download_and_convert_to_pdf(
        self,
        url: str,
        output_path: Path,
        max_retries: int = 3,
        keep_source: Path | None = None,
    ) -> bool:
        """Download an image and convert it to the A4 PDF.

        The download lands in a ``download_*`` temp file that is removed on
        every path. ``keep_source`` receives a copy of the original first.
        """
        try:
            content = self._fetch(url, max_retries)
        except DownloadError as exc:
            Log.error(str(exc))
            return False

        temp_path = self._media_store.temp_path("download_", self.suffix_of(url))
        try:
            temp_path.write_bytes(content)
            if keep_source is not None:
                keep_source.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(temp_path, keep_source)
            return self.convert_image_to_pdf(temp_path, output_path)
        finally:
            self._media_store.discard(temp_path)

    def _fetch(self, url: str, max_retries: int) -> bytes:
        for attempt in range(1, max_retries + 1):
            try:
                response = self._http.get(url)
            except httpx.HTTPError as exc:
                Log.warning(f"Download failed: {exc}", url=url, attempt=attempt)
            else:
                if response.is_success:
                    return response.content
                Log.warning(
                    f"Download failed: HTTP {response.status_code}", url=url, attempt=attempt
                )
            if attempt < max_retries:
                self._sleep(2 * attempt)
        raise DownloadError(f"Failed to download {url} after {max_retries} attempts")

    def _load_source(self, image_path: Path, page_number: int) -> Image.Image:
        if image_path.suffix.lower() == ".pdf":
            return self._renderer.render_image(image_path, page_number)
        with Image.open(image_path) as image:
            image.load()
            return image.convert("RGB")

    @staticmethod
    def _compose_a4(source: Image.Image) -> bytes:
        scale = min(A4_WIDTH_PX / source.width, A4_HEIGHT_PX / source.height)
        size = (max(1, int(source.width * scale)), max(1, int(source.height * scale)))
        scaled = source.resize(size, Image.Resampling.LANCZOS)
        canvas = Image.new("RGB", (A4_WIDTH_PX, A4_HEIGHT_PX), "white")
        canvas.paste(scaled, ((A4_WIDTH_PX - scaled.width) // 2, 0))
        buffer = io.BytesIO()
        canvas.save(buffer, "JPEG", quality=PDF_JPEG_QUALITY)
        return buffer.getvalue()

    @staticmethod
    def _a4_points() -> dict[str, float]:
        rect = pymupdf.paper_rect("a4")
        return {"width": rect.width, "height": rect.height}

    @staticmethod
    def suffix_of(url: str) -> str:
        suffix = Path(urlparse(url).path).suffix.lower()
        return suffix if suffix in {".jpg", ".jpeg", ".png", ".gif", ".webp", ".pdf"} else ".jpg"
