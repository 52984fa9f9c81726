"""
Coordinate model for template-driven PDF documents.

Coordinates are PDF user-space points with the origin at the bottom-left
corner of the page. ``page`` is a zero-based page index.

A template mapping is stored by the record-keeping layer as JSON, e.g.::

    {
      "text": [{"field": "rutPaciente", "x": 400, "y": 760, "fontSize": 10}],
      "checkboxes": {
        "rayosX": {"si": {"x": 120, "y": 520}, "no": {"x": 180, "y": 520}},
        "urgente": {"x": 500, "y": 700}
      }
    }

``parse_template_mapping`` turns that shape into the dataclasses below.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Union

logger = logging.getLogger(__name__)

DEFAULT_FONT_SIZE = 12.0
A4_HEIGHT = 842.0


def from_top(distance: float, page_height: float = A4_HEIGHT) -> float:
    """PDF ``y`` for a point ``distance`` points below the top edge."""
    return page_height - distance


def to_top(y: float, page_height: float = A4_HEIGHT) -> float:
    return page_height - y


@dataclass(frozen=True)
class CoordinatePoint:
    x: float
    y: float
    page: int = 0


@dataclass(frozen=True)
class FieldMapping:
    """One scalar text slot; ``field`` is looked up verbatim in the text payload."""

    field: str
    x: float
    y: float
    page: int = 0
    font_size: float = DEFAULT_FONT_SIZE
    max_width: float | None = None

    @property
    def wraps(self) -> bool:
        return bool(self.max_width and self.max_width > 0)


@dataclass(frozen=True)
class BinaryCheckbox:
    """Single toggle, marked when the runtime value is truthy."""

    point: CoordinatePoint


@dataclass(frozen=True)
class OptionCheckbox:
    """Multi-choice group, exactly one option is marked."""

    options: dict[str, CoordinatePoint]


CheckboxEntry = Union[BinaryCheckbox, OptionCheckbox]
CheckboxMapping = dict[str, CheckboxEntry]


@dataclass
class TemplateMapping:
    text: list[FieldMapping] = field(default_factory=list)
    checkboxes: CheckboxMapping = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.text and not self.checkboxes


@dataclass
class Diagnostics:
    """Warnings collected while composing one document."""

    warnings: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _first_present(raw: dict, *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def parse_point(raw: Any) -> CoordinatePoint | None:
    if not isinstance(raw, dict):
        return None
    x, y = raw.get("x"), raw.get("y")
    if not _is_number(x) or not _is_number(y):
        return None
    page = raw.get("page")
    return CoordinatePoint(float(x), float(y), int(page) if _is_number(page) else 0)


def parse_field_mapping(raw: Any) -> FieldMapping | None:
    if not isinstance(raw, dict) or not raw.get("field"):
        return None
    point = parse_point(raw)
    if point is None:
        return None
    font_size = _first_present(raw, "fontSize", "font_size")
    max_width = _first_present(raw, "maxWidth", "max_width")
    return FieldMapping(
        field=str(raw["field"]),
        x=point.x,
        y=point.y,
        page=point.page,
        font_size=float(font_size) if _is_number(font_size) and font_size > 0 else DEFAULT_FONT_SIZE,
        max_width=float(max_width) if _is_number(max_width) else None,
    )


def parse_checkbox_entry(raw: Any) -> CheckboxEntry | None:
    point = parse_point(raw)
    if point is not None:
        return BinaryCheckbox(point)
    if not isinstance(raw, dict) or not raw:
        return None
    options: dict[str, CoordinatePoint] = {}
    for label, option_raw in raw.items():
        option_point = parse_point(option_raw)
        if option_point is not None:
            options[str(label)] = option_point
    if not options:
        return None
    return OptionCheckbox(options)


def parse_template_mapping(raw: Any) -> TemplateMapping:
    """Build a TemplateMapping from stored JSON (string, dict or bare list)."""
    if isinstance(raw, (str, bytes)):
        raw = json.loads(raw) if raw.strip() else None
    if not raw:
        return TemplateMapping()
    if isinstance(raw, list):
        raw = {"text": raw}
    if not isinstance(raw, dict):
        raise ValueError(f"Unsupported template mapping type: {type(raw).__name__}")

    raw_text = raw.get("text") or []
    if not isinstance(raw_text, list):
        logger.warning("Ignoring malformed text mappings, expected a list: %r", raw_text)
        raw_text = []
    raw_checkboxes = raw.get("checkboxes") or {}
    if not isinstance(raw_checkboxes, dict):
        logger.warning("Ignoring malformed checkbox mappings, expected an object: %r", raw_checkboxes)
        raw_checkboxes = {}

    text: list[FieldMapping] = []
    for index, item in enumerate(raw_text):
        mapping = parse_field_mapping(item)
        if mapping is None:
            logger.warning("Skipping malformed text mapping [%d]: %r", index, item)
            continue
        text.append(mapping)

    checkboxes: CheckboxMapping = {}
    for name, item in raw_checkboxes.items():
        entry = parse_checkbox_entry(item)
        if entry is None:
            logger.warning("Skipping malformed checkbox mapping %r: %r", name, item)
            continue
        checkboxes[str(name)] = entry

    return TemplateMapping(text=text, checkboxes=checkboxes)


def _point_to_dict(point: CoordinatePoint) -> dict:
    out: dict = {"x": point.x, "y": point.y}
    if point.page:
        out["page"] = point.page
    return out


def mapping_to_dict(mapping: TemplateMapping) -> dict:
    text = []
    for item in mapping.text:
        entry = {"field": item.field, "x": item.x, "y": item.y, "fontSize": item.font_size}
        if item.page:
            entry["page"] = item.page
        if item.max_width is not None:
            entry["maxWidth"] = item.max_width
        text.append(entry)

    checkboxes: dict = {}
    for name, entry in mapping.checkboxes.items():
        if isinstance(entry, BinaryCheckbox):
            checkboxes[name] = _point_to_dict(entry.point)
        else:
            checkboxes[name] = {label: _point_to_dict(p) for label, p in entry.options.items()}

    return {"text": text, "checkboxes": checkboxes}
