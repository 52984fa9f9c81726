"""
Template-free document layout.

Used when no template mapping exists for a document type or the template
cannot be loaded. Every value is optional: empty values are skipped and a
missing logo is ignored, so building a document never fails on data.
"""

import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Mapping

from reportlab.lib.colors import Color
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

import settings
from document_overlay import FontContext, wrap_text_to_lines

logger = logging.getLogger(__name__)

PAGE_SIZE = (595.0, 842.0)
LEFT_MARGIN = 50.0
VALUE_X = 170.0
TOP_MARGIN = 50.0
FOOTER_MARGIN = 70.0
FIELD_LINE_HEIGHT = 18.0
WRAPPED_LINE_HEIGHT = 15.0
RISK_LINE_HEIGHT = 14.0
LONG_VALUE_CHARS = 60
LOGO_WIDTH = 150.0

BLACK = Color(0, 0, 0)
GREY = Color(0.5, 0.5, 0.5)
SUBTITLE = Color(0.3, 0.3, 0.3)
ACCENT = Color(0.2, 0.4, 0.8)
RULE = Color(0.8, 0.8, 0.8)
ALERT = Color(0.8, 0, 0)

# (label, candidate payload keys); the first non-empty key wins.
PATIENT_FIELDS = [
    ("Nombre", ("nombreCompleto", "nombrePaciente")),
    ("RUT", ("rut", "rutPaciente")),
    ("Fecha Nacimiento", ("fechaNac", "fechaNacimiento")),
    ("Previsión", ("prevision", "isapre", "isapreNombre")),
]
FACILITY_FIELDS = [
    ("Clínica", ("clinica", "clinicaNombre")),
    ("Dirección", ("direccionClinica", "clinicaDireccion")),
]
MEDICAL_FIELDS = [
    ("Diagnóstico", ("diagnostico",)),
    ("Código CIE-10", ("codigoCie10",)),
    ("Procedimiento", ("procedimiento", "procedimientoDescripcion", "cirugiaPropuesta")),
    ("Código FONASA", ("codigoFonasa", "procedimientoCodigo")),
    ("Lateralidad", ("lateralidad",)),
    ("Fecha Cirugía", ("fechaCirugia",)),
    ("Tratamiento", ("tratamiento",)),
]
CARE_TEAM_FIELDS = [
    ("Cirujano", ("cirujano", "cirujanoNombre")),
    ("RUT Cirujano", ("rutCirujano", "cirujanoRut")),
    ("Anestesista", ("anestesista", "anestesistaNombre")),
    ("Arsenalera", ("arsenalera", "arsenaleraNombre")),
    ("Ayudante 1", ("ayudante1", "ayudante1Nombre", "ayudante")),
    ("Ayudante 2", ("ayudante2", "ayudante2Nombre")),
]
ALERT_FLAGS = [
    ("Alergia Látex", ("alergiaLatex", "alergiasLatex")),
    ("Requiere Biopsia", ("requiereBiopsia",)),
    ("Requiere Rayos X", ("requiereRayos", "rayosX")),
]
RISK_KEYS = ("riesgos", "riesgosDescripcion")
TRUE_FLAGS = {"si", "sí", "true", "yes", "1"}


def lookup(data: Mapping[str, object], keys: tuple[str, ...]) -> str:
    for key in keys:
        raw = data.get(key)
        if raw is None:
            continue
        value = str(raw).strip()
        if value:
            return value
    return ""


def is_flag_set(data: Mapping[str, object], keys: tuple[str, ...]) -> bool:
    return lookup(data, keys).lower() in TRUE_FLAGS


def consumed_keys() -> set[str]:
    keys = {"fechaActual", *RISK_KEYS}
    for field_specs in (PATIENT_FIELDS, FACILITY_FIELDS, MEDICAL_FIELDS, CARE_TEAM_FIELDS, ALERT_FLAGS):
        for _, candidates in field_specs:
            keys.update(candidates)
    return keys


def remaining_fields(data: Mapping[str, object]) -> list[tuple[str, str]]:
    """Non-empty scalar values no section lays out, in payload order."""
    known = consumed_keys()
    extra = []
    for key, raw in data.items():
        if key in known or raw is None or isinstance(raw, (dict, list)):
            continue
        value = str(raw).strip()
        if value:
            extra.append((str(key), value))
    return extra


class GenericLayout:
    """Flowing top-down layout with a running vertical cursor."""

    def __init__(
        self,
        title: str,
        organization: str,
        generated_at: str,
        fonts: FontContext | None = None,
    ) -> None:
        self.packet = io.BytesIO()
        self.canvas = canvas.Canvas(self.packet, pagesize=PAGE_SIZE)
        self.canvas.setTitle(title)
        self.canvas.setAuthor(organization)
        self.width, self.height = PAGE_SIZE
        self.fonts = fonts or FontContext()
        self.organization = organization
        self.generated_at = generated_at
        self.y = self.height - TOP_MARGIN

    def text(self, x: float, text: str, size: float, bold: bool = False, color: Color = BLACK) -> None:
        self.canvas.setFont(self.fonts.bold if bold else self.fonts.regular, size)
        self.canvas.setFillColor(color)
        self.canvas.drawString(x, self.y, text)

    def rule(self, thickness: float = 1.0, color: Color = RULE) -> None:
        self.canvas.setStrokeColor(color)
        self.canvas.setLineWidth(thickness)
        self.canvas.line(LEFT_MARGIN, self.y, self.width - LEFT_MARGIN, self.y)

    def ensure_room(self, needed: float) -> None:
        if self.y - needed >= FOOTER_MARGIN:
            return
        self.footer()
        self.canvas.showPage()
        self.y = self.height - TOP_MARGIN

    def draw_logo(self, logo_path: Path | None) -> None:
        if logo_path is None:
            return
        if not Path(logo_path).is_file():
            logger.warning("Logo not found at %s", logo_path)
            return
        try:
            image = ImageReader(str(logo_path))
            img_w, img_h = image.getSize()
            logo_height = (img_h / img_w) * LOGO_WIDTH
            self.canvas.drawImage(
                image,
                (self.width - LOGO_WIDTH) / 2,
                self.height - logo_height - 30,
                width=LOGO_WIDTH,
                height=logo_height,
                mask="auto",
            )
        except Exception as exc:  # reportlab/PIL raise assorted errors for bad images
            logger.warning("Could not embed logo %s: %s", logo_path, exc)
            return
        self.y = self.height - logo_height - 50

    def heading(self, title: str) -> None:
        self.text(LEFT_MARGIN, "DOCUMENTO MÉDICO", 18, bold=True)
        self.y -= 25
        self.text(LEFT_MARGIN, f"Tipo: {title}", 14, bold=True, color=SUBTITLE)
        self.y -= 15
        self.rule(thickness=2, color=ACCENT)
        self.y -= 30

    def section_title(self, title: str) -> None:
        self.ensure_room(40)
        self.text(LEFT_MARGIN, title, 12, bold=True, color=ACCENT)
        self.y -= 20

    def section_break(self) -> None:
        self.y -= 15
        self.ensure_room(20)
        self.rule()
        self.y -= 20

    def field(self, label: str, value: str) -> None:
        if len(value) > LONG_VALUE_CHARS:
            lines = wrap_text_to_lines(value, self.fonts.regular, 11, self.width - 220)
        else:
            lines = [value]
        self.ensure_room(FIELD_LINE_HEIGHT)
        self.text(LEFT_MARGIN, f"{label}:", 11, bold=True)
        if len(lines) == 1:
            self.text(VALUE_X, lines[0], 11)
            self.y -= FIELD_LINE_HEIGHT
            return
        for line in lines:
            self.ensure_room(WRAPPED_LINE_HEIGHT)
            self.text(VALUE_X, line, 11)
            self.y -= WRAPPED_LINE_HEIGHT

    def fields(self, data: Mapping[str, object], field_specs: list[tuple[str, tuple[str, ...]]]) -> None:
        for label, keys in field_specs:
            value = lookup(data, keys)
            if value:
                self.field(label, value)

    def alerts(self, labels: list[str]) -> None:
        self.y -= 10
        self.ensure_room(FIELD_LINE_HEIGHT)
        self.text(LEFT_MARGIN, "Alertas:", 11, bold=True, color=ALERT)
        self.text(130, " | ".join(labels), 11, color=ALERT)
        self.y -= FIELD_LINE_HEIGHT

    def paragraph(self, text: str) -> None:
        for line in wrap_text_to_lines(text, self.fonts.regular, 10, self.width - 100):
            self.ensure_room(RISK_LINE_HEIGHT)
            self.text(LEFT_MARGIN, line, 10)
            self.y -= RISK_LINE_HEIGHT

    def footer(self) -> None:
        c = self.canvas
        c.setFont(self.fonts.regular, 9)
        c.setFillColor(GREY)
        c.drawString(LEFT_MARGIN, 40, f"Generado: {self.generated_at}")
        c.drawString(LEFT_MARGIN, 25, self.organization)

    def finish(self) -> bytes:
        self.footer()
        self.canvas.showPage()
        self.canvas.save()
        return self.packet.getvalue()


def build_generic_document(
    title: str,
    data: Mapping[str, object],
    logo_path: Path | None = None,
    organization: str | None = None,
    generated_at: str | None = None,
) -> bytes:
    """Lay out ``data`` in labelled sections on fresh A4 pages."""
    data = data or {}
    generated_at = generated_at or lookup(data, ("fechaActual",)) or datetime.now().strftime("%d/%m/%Y %H:%M")
    layout = GenericLayout(
        title=title or "Documento",
        organization=organization or settings.organization_name(),
        generated_at=generated_at,
    )

    layout.draw_logo(logo_path if logo_path is not None else settings.logo_path())
    layout.heading(title or "Documento")

    layout.section_title("DATOS DEL PACIENTE")
    layout.fields(data, PATIENT_FIELDS)
    layout.section_break()

    if any(lookup(data, keys) for _, keys in FACILITY_FIELDS):
        layout.section_title("ESTABLECIMIENTO")
        layout.fields(data, FACILITY_FIELDS)
        layout.section_break()

    layout.section_title("INFORMACIÓN MÉDICA")
    layout.fields(data, MEDICAL_FIELDS)

    if lookup(data, CARE_TEAM_FIELDS[0][1]) or lookup(data, CARE_TEAM_FIELDS[2][1]):
        layout.section_break()
        layout.section_title("EQUIPO MÉDICO")
        layout.fields(data, CARE_TEAM_FIELDS)

    alerts = [label for label, keys in ALERT_FLAGS if is_flag_set(data, keys)]
    if alerts:
        layout.alerts(alerts)

    risks = lookup(data, RISK_KEYS)
    if risks:
        layout.section_break()
        layout.section_title("RIESGOS Y COMPLICACIONES")
        layout.paragraph(risks)

    extra = remaining_fields(data)
    if extra:
        layout.section_break()
        layout.section_title("OTROS DATOS")
        for label, value in extra:
            layout.field(label, value)

    return layout.finish()


def create_sample_document() -> bytes:
    """Self-test document exercising the layout with fixed sample data."""
    sample = {
        "nombreCompleto": "Juan Pérez González",
        "rut": "12.345.678-9",
        "prevision": "FONASA",
        "diagnostico": "Examen de rutina",
        "tratamiento": (
            "Este es un PDF de ejemplo generado por el motor de documentos. "
            "Se pueden inyectar textos en posiciones específicas y crear documentos desde plantillas."
        ),
    }
    return build_generic_document("PDF de Ejemplo", sample)
