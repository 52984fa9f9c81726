from conftest import build_template_pdf
from coordinate_model import OptionCheckbox
from document_overlay import generate_document
from field_maps import (
    CONSENTIMIENTO_GENERAL_BUPA,
    SOLICITUD_PABELLON_BUPA,
    get_template_mapping,
    list_available_templates,
    to_general_consent_payload,
    to_surgery_request_payload,
)

PATIENT = {
    "nombre": "Juan",
    "apellidos": "Pérez González",
    "rut": "12.345.678-9",
    "edad": 52,
    "diagnostico": "Hernia inguinal derecha",
    "procedimiento": "Hernioplastia inguinal",
    "cirujano": "Dr. Silva",
    "lateralidad": "Derecha",
    "rayosX": "si",
    "convenio": "GES",
    "fecha": "01/03/2026",
}


def test_registry_aliases_share_mappings():
    assert get_template_mapping("pabellon/bupa.pdf") is SOLICITUD_PABELLON_BUPA
    assert get_template_mapping("solicitud_de_pabellon__2_.pdf") is SOLICITUD_PABELLON_BUPA
    assert get_template_mapping("consentimiento/bupa.pdf") is CONSENTIMIENTO_GENERAL_BUPA
    assert get_template_mapping("receta.pdf") is None
    assert "cba_consentimiento_general.pdf" in list_available_templates()


def test_surgery_checkbox_groups_are_option_maps():
    assert all(isinstance(entry, OptionCheckbox) for entry in SOLICITUD_PABELLON_BUPA.checkboxes.values())
    assert set(SOLICITUD_PABELLON_BUPA.checkboxes["lateralidad"].options) == {
        "derecha",
        "izquierda",
        "bilateral",
        "no aplica",
    }


def test_surgery_payload():
    text, checkboxes = to_surgery_request_payload(PATIENT)

    assert text["nombrePaciente"] == "Juan Pérez González"
    assert text["cirugiaPropuesta"] == "Hernioplastia inguinal"
    assert text["fechaSolicitada"] == "01/03/2026"
    assert text["horario"] == ""
    assert checkboxes == {
        "lateralidad": "Derecha",
        "alergiasLatex": "",
        "biopsia": "",
        "rayosX": "si",
        "convenio": "GES",
    }


def test_consent_payload_splits_full_name():
    text, checkboxes = to_general_consent_payload({"nombreCompleto": "Ana María Rojas", "edad": 41})

    assert text["nombrePaciente"] == "Ana"
    assert text["apellidosPaciente"] == "María Rojas"
    assert text["edadPaciente"] == "41"
    assert checkboxes == {}


def test_surgery_request_renders(tmp_path, spans):
    (tmp_path / "pabellon").mkdir()
    (tmp_path / "pabellon" / "bupa.pdf").write_bytes(build_template_pdf())
    text, checkboxes = to_surgery_request_payload(PATIENT)

    pdf = generate_document("pabellon/bupa.pdf", SOLICITUD_PABELLON_BUPA, text, checkboxes, search_dirs=[tmp_path])

    drawn = {s["text"]: (s["x"], s["y"]) for s in spans(pdf)}
    assert drawn["12.345.678-9"] == (400, 760)
    marks = sorted((s["x"], s["y"]) for s in spans(pdf) if s["text"] == "X")
    # derecha, rayosX si, convenio GES
    assert marks == [(120.0, 520.0), (120.0, 580.0), (180.0, 360.0)]


def test_consent_authorization_goes_to_last_page(tmp_path, spans):
    (tmp_path / "cba_consentimiento_general.pdf").write_bytes(build_template_pdf(pages=3))
    text, _ = to_general_consent_payload(PATIENT)

    pdf = generate_document(
        "cba_consentimiento_general.pdf", CONSENTIMIENTO_GENERAL_BUPA, text, search_dirs=[tmp_path]
    )

    pages = {s["text"]: s["page"] for s in spans(pdf)}
    assert pages["Hernia inguinal derecha"] == 0
    assert pages["Dr. Silva"] == 2
