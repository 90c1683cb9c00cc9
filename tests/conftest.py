import io
from collections.abc import Callable

import pytest
from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

CERTIFICATE_LINE = "This is to certify that John Smith has completed the Advanced Python course"


def make_pdf(*lines: str, author: str = "Registrar Office") -> bytes:
    """Render a single-page PDF with fixed dates so metadata scoring is stable."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter, invariant=1)
    c.setAuthor(author)
    y = 720
    for line in lines:
        c.drawString(72, y, line)
        y -= 20
    c.save()
    return buf.getvalue()


def make_image_bytes(
    fmt: str = "PNG", size: tuple[int, int] = (200, 120), color: str = "white"
) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture()
def certificate_pdf_bytes() -> bytes:
    """Single-page PDF whose native text layer names John Smith."""
    return make_pdf(CERTIFICATE_LINE, "Issued by the Example Institute of Technology")


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Valid PDF with a blank page and no text layer."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter, invariant=1)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter, invariant=1)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def png_bytes() -> bytes:
    return make_image_bytes("PNG")


@pytest.fixture()
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG")


@pytest.fixture()
def blank_image() -> Image.Image:
    return Image.new("RGB", (400, 300), "white")


@pytest.fixture()
def pdf_factory() -> Callable[..., bytes]:
    """Build ad-hoc single-page PDFs from lines of text."""
    return make_pdf
