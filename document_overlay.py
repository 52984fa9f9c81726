"""
Coordinate-driven text and checkbox injection onto PDF templates.

Drawing is recorded per page on a ``TemplateDocument`` and rendered at
serialization time: a reportlab overlay with one page per template page is
merged onto the template pages with pypdf. No AcroForm fields are used.
"""

import argparse
import base64
import io
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

from pypdf import PdfReader, PdfWriter
from reportlab.lib.colors import Color
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

import settings
from coordinate_model import (
    BinaryCheckbox,
    CheckboxMapping,
    CoordinatePoint,
    Diagnostics,
    FieldMapping,
    OptionCheckbox,
    TemplateMapping,
    parse_template_mapping,
)

logger = logging.getLogger(__name__)

# Inter-line gap added to the font size for wrapped text.
LINE_GAP = 2.0
CHECKBOX_MARK = "X"
CHECKBOX_SIZE = 12.0
BINARY_TRUE_VALUES = ("true", "si")


class TemplateError(Exception):
    """Raised when a template cannot be used to compose a document."""


class TemplateNotFoundError(TemplateError):
    def __init__(self, template_id: str, candidates: Iterable[Path]) -> None:
        self.template_id = template_id
        self.candidates = [str(path) for path in candidates]
        super().__init__(
            f"Template '{template_id}' not found. Searched: {', '.join(self.candidates) or '(none)'}"
        )


class TemplateLoadError(TemplateError):
    """The template file exists but is not a readable PDF."""


@dataclass(frozen=True)
class FontContext:
    """Standard sans-serif faces used while composing one document."""

    regular: str = "Helvetica"
    bold: str = "Helvetica-Bold"

    def width(self, text: str, size: float, bold: bool = False) -> float:
        return pdfmetrics.stringWidth(text, self.bold if bold else self.regular, size)


@dataclass(frozen=True)
class TextRun:
    text: str
    x: float
    y: float
    font: str
    size: float
    color: tuple[float, float, float] = (0.0, 0.0, 0.0)


@dataclass
class TemplateDocument:
    """A parsed template plus the text runs queued for each of its pages."""

    reader: PdfReader
    runs: dict[int, list[TextRun]] = field(default_factory=dict)

    @property
    def page_count(self) -> int:
        return len(self.reader.pages)

    def has_page(self, page_index: int) -> bool:
        return 0 <= page_index < self.page_count

    def page_size(self, page_index: int) -> tuple[float, float]:
        box = self.reader.pages[page_index].mediabox
        return float(box.width), float(box.height)

    def add_run(self, page_index: int, run: TextRun) -> None:
        self.runs.setdefault(page_index, []).append(run)

    def _render_overlay(self) -> PdfReader:
        packet = io.BytesIO()
        c = canvas.Canvas(packet, pagesize=self.page_size(0))
        for page_index in range(self.page_count):
            c.setPageSize(self.page_size(page_index))
            for run in self.runs.get(page_index, []):
                c.setFont(run.font, run.size)
                c.setFillColor(Color(*run.color))
                c.drawString(run.x, run.y, run.text)
            c.showPage()
        c.save()
        packet.seek(0)
        return PdfReader(packet)

    def to_bytes(self) -> bytes:
        overlay = self._render_overlay() if self.runs else None
        writer = PdfWriter()
        out = io.BytesIO()
        try:
            for page_index, page in enumerate(self.reader.pages):
                # add_page returns a clone; template pages stay untouched
                target = writer.add_page(page)
                if overlay is not None and self.runs.get(page_index):
                    target.merge_page(overlay.pages[page_index])
            writer.write(out)
        except Exception as exc:  # pypdf raises several error types on broken page content
            raise TemplateLoadError(f"Could not merge onto template pages: {exc}") from exc
        return out.getvalue()


def wrap_text_to_lines(text: str, font_name: str, size: float, max_width: float) -> list[str]:
    """Greedy word wrap on single spaces.

    A line keeps growing while its width is ``<= max_width``; a word that is
    wider than ``max_width`` on its own stays on its own line.
    """
    lines: list[str] = []
    current = ""
    for word in text.split(" "):
        candidate = f"{current} {word}" if current else word
        if current and pdfmetrics.stringWidth(candidate, font_name, size) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def _text_value(raw: object) -> str | None:
    if raw is None:
        return None
    value = raw if isinstance(raw, str) else str(raw)
    return value if value.strip() else None


def inject_text(
    document: TemplateDocument,
    mappings: Iterable[FieldMapping],
    data: Mapping[str, object],
    fonts: FontContext | None = None,
    diagnostics: Diagnostics | None = None,
) -> TemplateDocument:
    fonts = fonts or FontContext()
    if diagnostics is None:
        diagnostics = Diagnostics()

    for mapping in mappings:
        value = _text_value(data.get(mapping.field))
        if value is None:
            continue

        if not document.has_page(mapping.page):
            diagnostics.warn(
                f"Page {mapping.page} does not exist for field '{mapping.field}'. "
                f"Template has {document.page_count} page(s)."
            )
            continue

        if mapping.wraps:
            lines = wrap_text_to_lines(value, fonts.regular, mapping.font_size, float(mapping.max_width))
        else:
            lines = [value]

        line_height = mapping.font_size + LINE_GAP
        for index, line in enumerate(lines):
            document.add_run(
                mapping.page,
                TextRun(line, mapping.x, mapping.y - index * line_height, fonts.regular, mapping.font_size),
            )

    return document


def normalize_option(value: str) -> str:
    return value.strip().lower()


def resolve_option_key(options: Mapping[str, CoordinatePoint], value: object) -> str | None:
    if isinstance(value, bool):
        key = "si" if value else "no"
        if key not in options:
            key = "true" if value else "false"
        return key if key in options else None

    target = normalize_option(str(value))
    for option in options:
        if normalize_option(option) == target:
            return option
    return None


def resolve_checkbox_point(entry: object, value: object) -> CoordinatePoint | None:
    """Coordinate to mark for ``value``, or None when nothing should be drawn."""
    if value is None or value == "":
        return None
    if isinstance(entry, BinaryCheckbox):
        if value is True or value in BINARY_TRUE_VALUES:
            return entry.point
        return None
    if isinstance(entry, OptionCheckbox):
        key = resolve_option_key(entry.options, value)
        return entry.options[key] if key is not None else None
    return None


def inject_checkboxes(
    document: TemplateDocument,
    mappings: CheckboxMapping,
    data: Mapping[str, object],
    fonts: FontContext | None = None,
    diagnostics: Diagnostics | None = None,
) -> TemplateDocument:
    fonts = fonts or FontContext()
    if diagnostics is None:
        diagnostics = Diagnostics()

    for name, entry in mappings.items():
        value = data.get(name)
        if value is None or value == "":
            continue

        if not isinstance(entry, (BinaryCheckbox, OptionCheckbox)):
            diagnostics.warn(f"Checkbox '{name}' has a malformed mapping: {entry!r}")
            continue

        point = resolve_checkbox_point(entry, value)
        if point is None:
            continue

        if not document.has_page(point.page):
            diagnostics.warn(
                f"Page {point.page} does not exist for checkbox '{name}'. "
                f"Template has {document.page_count} page(s)."
            )
            continue

        document.add_run(point.page, TextRun(CHECKBOX_MARK, point.x, point.y, fonts.bold, CHECKBOX_SIZE))

    return document


def find_template(template_id: str, search_dirs: Iterable[Path] | None = None) -> Path:
    """Return the first existing ``template_id`` under the ordered search dirs."""
    dirs = list(search_dirs) if search_dirs is not None else settings.template_search_dirs()
    relative = Path(template_id)
    if not template_id or relative.is_absolute() or ".." in relative.parts:
        raise TemplateNotFoundError(template_id, [])

    candidates = [Path(base) / relative for base in dirs]
    for candidate in candidates:
        if candidate.is_file():
            logger.debug("Template %s resolved to %s", template_id, candidate)
            return candidate
    raise TemplateNotFoundError(template_id, candidates)


def load_template(path: Path) -> TemplateDocument:
    try:
        template_bytes = Path(path).read_bytes()
    except OSError as exc:
        raise TemplateLoadError(f"Could not read template {path}: {exc}") from exc

    try:
        reader = PdfReader(io.BytesIO(template_bytes))
        page_count = len(reader.pages)
    except Exception as exc:  # pypdf raises several error types on corrupt input
        raise TemplateLoadError(f"Template {path} is not a readable PDF: {exc}") from exc

    if page_count == 0:
        raise TemplateLoadError(f"Template {path} has no pages.")
    return TemplateDocument(reader)


def generate_document(
    template_id: str,
    mapping: TemplateMapping,
    text_data: Mapping[str, object],
    checkbox_data: Mapping[str, object] | None = None,
    search_dirs: Iterable[Path] | None = None,
    diagnostics: Diagnostics | None = None,
) -> bytes:
    """Compose ``template_id`` with the given payload and return PDF bytes.

    Raises TemplateNotFoundError or TemplateLoadError; every other anomaly
    (missing values, bad page indexes, unmatched options) is skipped and
    reported through ``diagnostics``.
    """
    if diagnostics is None:
        diagnostics = Diagnostics()
    fonts = FontContext()

    document = load_template(find_template(template_id, search_dirs))
    if mapping.text:
        inject_text(document, mapping.text, text_data, fonts, diagnostics)
    if mapping.checkboxes:
        inject_checkboxes(document, mapping.checkboxes, checkbox_data or {}, fonts, diagnostics)

    pdf_bytes = document.to_bytes()
    logger.info(
        "Generated %s: %d bytes, %d warning(s)",
        template_id,
        len(pdf_bytes),
        len(diagnostics.warnings),
    )
    return pdf_bytes


def pdf_to_base64(pdf_bytes: bytes) -> str:
    return base64.b64encode(pdf_bytes).decode("ascii")


def get_pdf_info(pdf_bytes: bytes) -> dict:
    reader = PdfReader(io.BytesIO(pdf_bytes))
    metadata = reader.metadata
    return {
        "page_count": len(reader.pages),
        "title": metadata.title if metadata else None,
        "author": metadata.author if metadata else None,
        "creator": metadata.creator if metadata else None,
    }


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Draw a text/checkbox payload onto a PDF template using a coordinate mapping."
    )
    parser.add_argument("--template", required=True, help="Template identifier (relative file name).")
    parser.add_argument("--mapping", required=True, help="Path to template mapping JSON.")
    parser.add_argument("--text-json", help="Path to JSON object with text values.")
    parser.add_argument("--checkbox-json", help="Path to JSON object with checkbox values.")
    parser.add_argument("--output", required=True, help="Output PDF path.")
    parser.add_argument(
        "--templates-dir",
        action="append",
        help="Template directory to search (repeatable). Defaults to the configured directories.",
    )
    parser.add_argument(
        "--fallback-title",
        help="Build the generic document with this title when the template cannot be used.",
    )
    return parser.parse_args()


def _load_json_object(path: str | None) -> dict:
    if not path:
        return {}
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object.")
    return data


def main() -> None:
    settings.configure_logging()
    args = parse_args()

    mapping = parse_template_mapping(Path(args.mapping).read_text(encoding="utf-8"))
    text_data = _load_json_object(args.text_json)
    checkbox_data = _load_json_object(args.checkbox_json)
    search_dirs = [Path(d) for d in args.templates_dir] if args.templates_dir else None
    diagnostics = Diagnostics()

    try:
        pdf_bytes = generate_document(
            args.template, mapping, text_data, checkbox_data, search_dirs, diagnostics
        )
    except TemplateError as exc:
        if not args.fallback_title:
            raise
        from generic_document import build_generic_document

        print(f"[WARN] {exc}. Writing generic document instead.")
        pdf_bytes = build_generic_document(args.fallback_title, {**checkbox_data, **text_data})

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(pdf_bytes)
    for warning in diagnostics.warnings:
        print(f"[WARN] {warning}")
    print(f"Wrote: {output_path}")


if __name__ == "__main__":
    main()
