"""
Coordinate mappings for the clinic PDF templates.

PDF coordinates start at the bottom-left corner. For an A4 page (595x842)
a field measured from the top of the page sits at ``from_top(distance)``.
"""

from coordinate_model import (
    CoordinatePoint,
    FieldMapping,
    OptionCheckbox,
    TemplateMapping,
)


def _options(**points: tuple[float, float]) -> OptionCheckbox:
    return OptionCheckbox({label: CoordinatePoint(x, y) for label, (x, y) in points.items()})


# Solicitud de pabellón, Clínica Bupa Antofagasta (solicitud_de_pabellon__2_.pdf)
SOLICITUD_PABELLON_BUPA = TemplateMapping(
    text=[
        # patient
        FieldMapping("nombrePaciente", 120, 760, font_size=10, max_width=250),
        FieldMapping("rutPaciente", 400, 760, font_size=10),
        FieldMapping("fechaNacimiento", 120, 740, font_size=10),
        FieldMapping("telefonoPaciente", 300, 740, font_size=10),
        # surgery
        FieldMapping("fechaSolicitada", 120, 700, font_size=10),
        FieldMapping("horario", 300, 700, font_size=10),
        FieldMapping("diagnostico", 120, 660, font_size=9, max_width=400),
        FieldMapping("cirugiaPropuesta", 120, 620, font_size=9, max_width=400),
        FieldMapping("codigoCirugia", 120, 600, font_size=9),
        FieldMapping("duracionEstimada", 350, 600, font_size=9),
        FieldMapping("puntajeETE", 450, 560, font_size=10),
        # care team
        FieldMapping("cirujano", 120, 480, font_size=10, max_width=200),
        FieldMapping("ayudante", 120, 460, font_size=10, max_width=200),
        FieldMapping("anestesista", 120, 440, font_size=10, max_width=200),
        FieldMapping("arsenalera", 120, 420, font_size=10, max_width=200),
        FieldMapping("prevision", 120, 380, font_size=10),
    ],
    checkboxes={
        "lateralidad": OptionCheckbox(
            {
                "derecha": CoordinatePoint(120, 580),
                "izquierda": CoordinatePoint(200, 580),
                "bilateral": CoordinatePoint(280, 580),
                "no aplica": CoordinatePoint(360, 580),
            }
        ),
        "alergiasLatex": _options(si=(120, 560), no=(180, 560)),
        "biopsia": _options(no=(120, 540), si=(160, 540), diferida=(200, 540), rapida=(260, 540)),
        "rayosX": _options(si=(120, 520), no=(180, 520)),
        "convenio": OptionCheckbox(
            {
                "PAD": CoordinatePoint(120, 360),
                "GES": CoordinatePoint(180, 360),
                "CAE": CoordinatePoint(240, 360),
                "SIP": CoordinatePoint(300, 360),
                "LIBRE ELECCION": CoordinatePoint(360, 360),
            }
        ),
    },
)

# Consentimiento general, Clínica Bupa Antofagasta (cba_consentimiento_general.pdf).
# Three pages: patient data on page 1, authorization on page 3.
CONSENTIMIENTO_GENERAL_BUPA = TemplateMapping(
    text=[
        FieldMapping("nombrePaciente", 180, 750, font_size=11, max_width=300),
        FieldMapping("apellidosPaciente", 180, 730, font_size=11, max_width=300),
        FieldMapping("rutPaciente", 180, 710, font_size=11),
        FieldMapping("edadPaciente", 180, 690, font_size=11),
        FieldMapping("fechaNacimiento", 300, 690, font_size=11),
        FieldMapping("diagnostico", 180, 650, font_size=10, max_width=350),
        FieldMapping("procedimiento", 180, 610, font_size=10, max_width=350),
        FieldMapping("nombreAutorizacion", 180, 400, page=2, font_size=11, max_width=300),
        FieldMapping("apellidosAutorizacion", 180, 380, page=2, font_size=11, max_width=300),
        FieldMapping("rutAutorizacion", 180, 360, page=2, font_size=11),
        FieldMapping("medicoResponsableNombre", 180, 280, page=2, font_size=11, max_width=250),
        FieldMapping("medicoResponsableRut", 180, 260, page=2, font_size=11),
        FieldMapping("fechaConsentimiento", 180, 200, page=2, font_size=10),
    ],
)

TEMPLATE_MAPPINGS: dict[str, TemplateMapping] = {
    "solicitud_de_pabellon__2_.pdf": SOLICITUD_PABELLON_BUPA,
    "pabellon/bupa.pdf": SOLICITUD_PABELLON_BUPA,
    "cba_consentimiento_general.pdf": CONSENTIMIENTO_GENERAL_BUPA,
    "consentimiento/bupa.pdf": CONSENTIMIENTO_GENERAL_BUPA,
}


def get_template_mapping(template_name: str) -> TemplateMapping | None:
    return TEMPLATE_MAPPINGS.get(template_name)


def list_available_templates() -> list[str]:
    return list(TEMPLATE_MAPPINGS)


def _get(data: dict, *keys: str) -> str:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return str(value)
    return ""


def _split_full_name(data: dict) -> tuple[str, str]:
    parts = _get(data, "nombreCompleto").split()
    return (parts[0] if parts else "", " ".join(parts[1:]))


def to_surgery_request_payload(data: dict) -> tuple[dict[str, str], dict[str, str | bool]]:
    """Flatten a patient/surgical-event record for SOLICITUD_PABELLON_BUPA."""
    full_name = _get(data, "nombreCompleto") or f"{_get(data, 'nombre')} {_get(data, 'apellidos')}".strip()
    text = {
        "nombrePaciente": full_name,
        "rutPaciente": _get(data, "rut"),
        "fechaNacimiento": _get(data, "fechaNacimiento"),
        "telefonoPaciente": _get(data, "telefono"),
        "fechaSolicitada": _get(data, "fechaSolicitada", "fecha"),
        "horario": _get(data, "horario"),
        "diagnostico": _get(data, "diagnostico"),
        "cirugiaPropuesta": _get(data, "cirugiaPropuesta", "procedimiento"),
        "codigoCirugia": _get(data, "codigoCirugia"),
        "duracionEstimada": _get(data, "duracionEstimada"),
        "puntajeETE": _get(data, "puntajeETE"),
        "cirujano": _get(data, "cirujano"),
        "ayudante": _get(data, "ayudante"),
        "anestesista": _get(data, "anestesista"),
        "arsenalera": _get(data, "arsenalera"),
        "prevision": _get(data, "prevision"),
    }
    checkboxes: dict[str, str | bool] = {
        "lateralidad": _get(data, "lateralidad"),
        "alergiasLatex": _get(data, "alergiasLatex"),
        "biopsia": _get(data, "biopsia"),
        "rayosX": _get(data, "rayosX"),
        "convenio": _get(data, "convenio"),
    }
    return text, checkboxes


def to_general_consent_payload(data: dict) -> tuple[dict[str, str], dict[str, str | bool]]:
    """Flatten a patient record for CONSENTIMIENTO_GENERAL_BUPA."""
    first_name, last_names = _split_full_name(data)
    text = {
        "nombrePaciente": _get(data, "nombre") or first_name,
        "apellidosPaciente": _get(data, "apellidos") or last_names,
        "rutPaciente": _get(data, "rut"),
        "edadPaciente": _get(data, "edad"),
        "fechaNacimiento": _get(data, "fechaNacimiento"),
        "diagnostico": _get(data, "diagnostico"),
        "procedimiento": _get(data, "procedimiento", "cirugiaPropuesta"),
        "nombreAutorizacion": _get(data, "nombre"),
        "apellidosAutorizacion": _get(data, "apellidos"),
        "rutAutorizacion": _get(data, "rut"),
        "medicoResponsableNombre": _get(data, "medicoResponsable", "cirujano"),
        "medicoResponsableRut": _get(data, "medicoResponsableRut"),
        "fechaConsentimiento": _get(data, "fecha", "fechaSolicitada"),
    }
    return text, {}
