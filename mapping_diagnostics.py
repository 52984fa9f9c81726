"""
Developer tooling for template mappings: bounds validation, preview PDFs
showing where each field lands, and a labelled calibration grid.

Nothing here is called from the document generation path.
"""

import io
from dataclasses import dataclass, field

from pypdf import PdfReader, PdfWriter
from reportlab.lib.colors import Color
from reportlab.pdfgen import canvas

from coordinate_model import A4_HEIGHT, BinaryCheckbox, CoordinatePoint, OptionCheckbox, TemplateMapping, from_top

A4_WIDTH = 595.0
EDGE_MARGIN = 20.0

FIELD_COLOR = Color(0, 0, 1)
CHECKBOX_COLOR = Color(1, 0, 0)
LABEL_COLOR = Color(0.5, 0.5, 0.5)


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def extend(self, prefix: str, other: "ValidationResult") -> None:
        self.errors.extend(f"{prefix}: {message}" for message in other.errors)
        self.warnings.extend(f"{prefix}: {message}" for message in other.warnings)

    def to_dict(self) -> dict:
        return {"valid": self.valid, "errors": list(self.errors), "warnings": list(self.warnings)}


def _check_axis(
    name: str,
    value: float,
    limit: float,
    low_edge: str,
    high_edge: str,
    result: ValidationResult,
) -> None:
    if value < 0:
        result.errors.append(f"{name} is negative: {value:g}. Must be >= 0")
    elif value > limit:
        result.errors.append(f"{name} out of range: {value:g}. Must be <= {limit:g}")
    elif value < EDGE_MARGIN:
        result.warnings.append(f"{name} too close to the {low_edge} edge: {value:g}. Consider >= {EDGE_MARGIN:g}")
    elif value > limit - EDGE_MARGIN:
        result.warnings.append(
            f"{name} too close to the {high_edge} edge: {value:g}. Consider <= {limit - EDGE_MARGIN:g}"
        )


def validate_coordinates(
    x: float,
    y: float,
    page_width: float = A4_WIDTH,
    page_height: float = A4_HEIGHT,
) -> ValidationResult:
    result = ValidationResult()
    _check_axis("X", x, page_width, "left", "right", result)
    _check_axis("Y", y, page_height, "bottom", "top", result)
    return result


def validate_template_mapping(
    mapping: TemplateMapping,
    page_width: float = A4_WIDTH,
    page_height: float = A4_HEIGHT,
) -> ValidationResult:
    """Check every text and checkbox coordinate of ``mapping`` against the page bounds."""
    result = ValidationResult()

    for index, item in enumerate(mapping.text):
        result.extend(
            f'Text field [{index}] "{item.field}"',
            validate_coordinates(item.x, item.y, page_width, page_height),
        )

    for index, (name, entry) in enumerate(mapping.checkboxes.items()):
        if isinstance(entry, BinaryCheckbox):
            result.extend(
                f'Checkbox [{index}] "{name}"',
                validate_coordinates(entry.point.x, entry.point.y, page_width, page_height),
            )
        elif isinstance(entry, OptionCheckbox):
            for label, point in entry.options.items():
                result.extend(
                    f'Checkbox [{index}] "{name}" option "{label}"',
                    validate_coordinates(point.x, point.y, page_width, page_height),
                )
        else:
            result.errors.append(f'Checkbox [{index}] "{name}": malformed mapping {entry!r}')

    return result


def _checkbox_markers(mapping: TemplateMapping) -> list[tuple[str, CoordinatePoint]]:
    markers: list[tuple[str, CoordinatePoint]] = []
    for name, entry in mapping.checkboxes.items():
        if isinstance(entry, BinaryCheckbox):
            markers.append((f"[{name}]", entry.point))
        elif isinstance(entry, OptionCheckbox):
            markers.extend((f"[{name}:{label}]", point) for label, point in entry.options.items())
    return markers


def _max_page(mapping: TemplateMapping) -> int:
    pages = [item.page for item in mapping.text]
    pages.extend(point.page for _, point in _checkbox_markers(mapping))
    return max(pages, default=0)


def draw_marker_dot(c: canvas.Canvas, x: float, y: float) -> None:
    c.saveState()
    c.setFillColor(FIELD_COLOR)
    c.circle(x, y, 3, stroke=0, fill=1)
    c.restoreState()


def draw_marker_box(c: canvas.Canvas, x: float, y: float) -> None:
    c.saveState()
    c.setStrokeColor(CHECKBOX_COLOR)
    c.setLineWidth(1)
    c.rect(x - 2, y - 2, 12, 12, stroke=1, fill=0)
    c.restoreState()


def _draw_preview_page(c: canvas.Canvas, mapping: TemplateMapping, page_index: int, page_h: float) -> None:
    if page_index == 0:
        c.setFont("Helvetica-Bold", 16)
        c.setFillColor(Color(0, 0, 0))
        c.drawString(50, from_top(30, page_h), "Vista Previa de Mapeo de Campos")

    for item in mapping.text:
        if item.page != page_index:
            continue
        draw_marker_dot(c, item.x, item.y)
        c.setFont("Helvetica", item.font_size)
        c.setFillColor(FIELD_COLOR)
        c.drawString(item.x, item.y, f"[{item.field}]")
        c.setFont("Helvetica", 8)
        c.setFillColor(LABEL_COLOR)
        c.drawString(item.x, item.y - 12, f"({item.x:g},{item.y:g})")

    for label, point in _checkbox_markers(mapping):
        if point.page != page_index:
            continue
        draw_marker_box(c, point.x, point.y)
        c.setFont("Helvetica", 8)
        c.setFillColor(CHECKBOX_COLOR)
        c.drawString(point.x + 15, point.y, label)


def generate_mapping_preview(
    mapping: TemplateMapping,
    page_width: float = A4_WIDTH,
    page_height: float = A4_HEIGHT,
    template_bytes: bytes | None = None,
) -> bytes:
    """Render a marker and label for every mapped field on its target page.

    Without a template, blank pages are created up to the highest page the
    mapping references; with one, the markers are merged onto its pages and
    entries on pages the template lacks are not drawn.
    """
    template = PdfReader(io.BytesIO(template_bytes)) if template_bytes else None
    if template is not None:
        sizes = [(float(p.mediabox.width), float(p.mediabox.height)) for p in template.pages]
    else:
        sizes = [(page_width, page_height)] * (_max_page(mapping) + 1)

    packet = io.BytesIO()
    c = canvas.Canvas(packet, pagesize=sizes[0])
    for page_index, (page_w, page_h) in enumerate(sizes):
        c.setPageSize((page_w, page_h))
        _draw_preview_page(c, mapping, page_index, page_h)
        c.showPage()
    c.save()

    if template is None:
        return packet.getvalue()

    packet.seek(0)
    overlay = PdfReader(packet)
    writer = PdfWriter()
    for page_index, page in enumerate(template.pages):
        page.merge_page(overlay.pages[page_index])
        writer.add_page(page)
    out = io.BytesIO()
    writer.write(out)
    return out.getvalue()


def draw_grid(c: canvas.Canvas, page_w: float, page_h: float, step: float) -> None:
    if step <= 0:
        return
    c.saveState()
    c.setStrokeColor(Color(0.8, 0.8, 0.8))
    c.setFillColor(LABEL_COLOR)
    c.setFont("Helvetica", 8)
    index = 0
    x = 0.0
    while x <= page_w:
        major = index % 2 == 0
        c.setLineWidth(1 if major else 0.5)
        c.line(x, 0, x, page_h)
        if major:
            c.drawString(x + 2, 5, f"{x:g}")
        x += step
        index += 1
    index = 0
    y = 0.0
    while y <= page_h:
        major = index % 2 == 0
        c.setLineWidth(1 if major else 0.5)
        c.line(0, y, page_w, y)
        if major:
            c.drawString(5, y + 2, f"{y:g}")
        y += step
        index += 1
    c.restoreState()


def generate_coordinate_grid(
    page_width: float = A4_WIDTH,
    page_height: float = A4_HEIGHT,
    spacing: float = 50.0,
) -> bytes:
    """A blank page with a labelled grid, for reading coordinates off a print."""
    packet = io.BytesIO()
    c = canvas.Canvas(packet, pagesize=(page_width, page_height))
    draw_grid(c, page_width, page_height, spacing)

    c.setFillColor(Color(0, 0, 0))
    c.setFont("Helvetica-Bold", 14)
    c.drawString(page_width / 2 - 100, from_top(30, page_height), "Cuadrícula de Coordenadas PDF")
    c.setFont("Helvetica", 10)
    c.drawString(50, from_top(60, page_height), f"Tamaño: {page_width:g} x {page_height:g} pts")
    c.drawString(50, from_top(75, page_height), f"Espaciado: {spacing:g} pts")
    c.drawString(50, from_top(90, page_height), "Origen (0,0) = Esquina inferior izquierda")

    c.setFillColor(Color(1, 0, 0))
    for corner_x, corner_y in ((0, 0), (page_width, 0), (0, page_height), (page_width, page_height)):
        c.circle(corner_x, corner_y, 10, stroke=0, fill=1)
    c.setFont("Helvetica-Bold", 10)
    c.drawString(5, 5, "(0,0)")

    c.showPage()
    c.save()
    return packet.getvalue()
