import json
import sys

import fitz
import pytest

from conftest import build_template_pdf, page_count
from coordinate_model import parse_template_mapping
from template_inspector import (
    TextAnchor,
    annotate_anchors,
    extract_text_anchors,
    main,
    suggest_field_mapping,
    suggest_mapping,
)

LABELS = {
    0: [(50, 760, "Nombre paciente:"), (50, 740, "RUT:"), (50, 720, "Fecha nacimiento:")],
    1: [(50, 400, "Firma del medico")],
}


@pytest.fixture
def template_path(tmp_path):
    path = tmp_path / "solicitud.pdf"
    path.write_bytes(build_template_pdf(pages=2, labels=LABELS))
    return path


def test_anchors_use_bottom_left_origin(template_path):
    anchors = extract_text_anchors(template_path)

    by_text = {anchor.text: anchor for anchor in anchors}
    assert set(by_text) == {"Nombre paciente:", "RUT:", "Fecha nacimiento:"}
    rut = by_text["RUT:"]
    assert rut.x == pytest.approx(50, abs=0.5)
    assert rut.y == pytest.approx(740, abs=0.5)
    assert rut.bbox[1] < rut.y < rut.bbox[3]
    assert rut.size == pytest.approx(11, abs=0.1)


def test_anchor_filters(template_path):
    assert [a.text for a in extract_text_anchors(template_path, contains="FECHA")] == ["Fecha nacimiento:"]
    assert [a.text for a in extract_text_anchors(template_path, min_len=5)] == [
        "Nombre paciente:",
        "Fecha nacimiento:",
    ]
    assert len(extract_text_anchors(template_path, max_items=1)) == 1
    assert [a.text for a in extract_text_anchors(template_path, page_index=1)] == ["Firma del medico"]


def test_out_of_range_page(template_path):
    with pytest.raises(IndexError):
        extract_text_anchors(template_path, page_index=2)


def test_suggested_field_sits_right_of_label():
    anchor = TextAnchor("RUT:", "Times-Roman", 11.0, 50.0, 740.0, (50.0, 737.5, 72.62, 750.2))

    mapping = suggest_field_mapping(anchor, "rutPaciente", page=1)

    assert (mapping.field, mapping.x, mapping.y, mapping.page) == ("rutPaciente", 78.6, 740.0, 1)
    assert mapping.font_size == 10


def test_suggested_mapping_is_loadable(template_path):
    anchors = extract_text_anchors(template_path)

    mapping = parse_template_mapping(suggest_mapping(anchors))

    assert [item.field for item in mapping.text] == ["field001", "field002", "field003"]


def test_annotate_writes_marked_copy(template_path, tmp_path):
    anchors = extract_text_anchors(template_path)
    output = tmp_path / "out" / "annotated.pdf"

    annotate_anchors(template_path, 0, anchors, output)

    assert page_count(output.read_bytes()) == 2
    with fitz.open(str(output)) as doc:
        assert "001" in doc[0].get_text()


def test_cli_writes_json(template_path, tmp_path, monkeypatch, capsys):
    output = tmp_path / "anchors.json"
    monkeypatch.setattr(
        sys, "argv", ["template_inspector.py", "--template", str(template_path), "--output-json", str(output)]
    )

    main()

    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload["page"] == 0
    assert len(payload["items"]) == 3
    assert len(payload["suggested"]["text"]) == 3
    assert "Matches: 3" in capsys.readouterr().out


def test_cli_validates_and_previews_mapping(tmp_path, monkeypatch, capsys):
    mapping_path = tmp_path / "mapping.json"
    mapping_path.write_text(json.dumps({"text": [{"field": "rut", "x": 700, "y": 100}]}), encoding="utf-8")
    preview = tmp_path / "preview.pdf"
    grid = tmp_path / "grid.pdf"
    monkeypatch.setattr(
        sys,
        "argv",
        ["template_inspector.py", "--mapping", str(mapping_path), "--preview", str(preview), "--grid", str(grid)],
    )

    main()

    out = capsys.readouterr().out
    assert "valid=False" in out
    assert "[ERROR]" in out
    assert preview.read_bytes().startswith(b"%PDF")
    assert grid.read_bytes().startswith(b"%PDF")
