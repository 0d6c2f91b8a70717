import io
from pathlib import Path

import pytest
from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def parte_image(tmp_path: Path) -> Path:
    """A blank A4-proportioned JPEG standing in for a scanned parte."""
    path = tmp_path / "parte.jpg"
    Image.new("RGB", (1000, 2000), "white").save(path, "JPEG")
    return path


@pytest.fixture()
def portrait_image(tmp_path: Path) -> Path:
    """A white page with a dark square where the portrait sits."""
    path = tmp_path / "portrait_page.png"
    image = Image.new("RGB", (1000, 1000), "white")
    image.paste((40, 40, 40), (250, 250, 750, 750))
    image.save(path, "PNG")
    return path
