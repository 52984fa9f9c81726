import io
from pathlib import Path

import fitz
import pytest
from reportlab.pdfgen import canvas


def build_template_pdf(pages: int = 1, size: tuple[float, float] = (595, 842), labels: dict | None = None) -> bytes:
    """Blank template; ``labels`` maps page index -> [(x, y, text)] printed in Times."""
    packet = io.BytesIO()
    c = canvas.Canvas(packet, pagesize=size)
    for page_index in range(pages):
        for x, y, text in (labels or {}).get(page_index, []):
            c.setFont("Times-Roman", 11)
            c.drawString(x, y, text)
        c.showPage()
    c.save()
    return packet.getvalue()


def read_spans(pdf_bytes: bytes) -> list[dict]:
    """Text spans of every page, with origins in bottom-left coordinates."""
    spans = []
    with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
        for page_index, page in enumerate(doc):
            page_h = float(page.rect.height)
            data = page.get_text("dict")
            for block in data.get("blocks", []):
                if block.get("type") != 0:
                    continue
                for line in block.get("lines", []):
                    for span in line.get("spans", []):
                        text = span.get("text", "")
                        if not text.strip():
                            continue
                        spans.append(
                            {
                                "page": page_index,
                                "text": text,
                                "x": round(span["origin"][0], 1),
                                "y": round(page_h - span["origin"][1], 1),
                                "font": span.get("font"),
                                "size": round(span.get("size", 0), 1),
                                "color": span.get("color"),
                            }
                        )
    return spans


def page_count(pdf_bytes: bytes) -> int:
    with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
        return len(doc)


@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "templates"
    directory.mkdir()
    (directory / "one_page.pdf").write_bytes(build_template_pdf(pages=1))
    (directory / "three_pages.pdf").write_bytes(build_template_pdf(pages=3))
    (directory / "corrupt.pdf").write_bytes(b"this is not a pdf")
    return directory


@pytest.fixture
def spans():
    return read_spans


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path: Path):
    monkeypatch.delenv("TEMPLATES_DIR", raising=False)
    monkeypatch.setenv("PDF_TEMPLATES_PRIMARY_DIR", str(tmp_path / "templates"))
    monkeypatch.setenv("PDF_TEMPLATES_FALLBACK_DIR", str(tmp_path / "fallback"))
    monkeypatch.setenv("DOCUMENT_LOGO_PATH", str(tmp_path / "missing-logo.jpg"))
    monkeypatch.setenv("DOCUMENT_ORGANIZATION", "NeuroMedic - Neurocirujanos")
