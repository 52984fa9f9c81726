import argparse
import json
from dataclasses import asdict, dataclass
from pathlib import Path

import fitz

from coordinate_model import FieldMapping, TemplateMapping, mapping_to_dict, parse_template_mapping
from mapping_diagnostics import (
    generate_coordinate_grid,
    generate_mapping_preview,
    validate_template_mapping,
)


@dataclass(frozen=True)
class TextAnchor:
    """A text span on a template page, in bottom-left (PDF) coordinates."""

    text: str
    font: str | None
    size: float
    x: float
    y: float
    bbox: tuple[float, float, float, float]


def to_bottom_left_bbox(bbox: list[float], page_h: float) -> tuple[float, float, float, float]:
    x0, y0, x1, y1 = bbox
    return (x0, page_h - y1, x1, page_h - y0)


def iter_spans(page: fitz.Page):
    data = page.get_text("dict")
    for block in data.get("blocks", []):
        if block.get("type") != 0:
            continue
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                yield span


def extract_text_anchors(
    template_path: Path,
    page_index: int = 0,
    contains: str | None = None,
    min_len: int = 1,
    max_items: int = 0,
) -> list[TextAnchor]:
    with fitz.open(str(template_path)) as doc:
        if page_index < 0 or page_index >= len(doc):
            raise IndexError(f"Page {page_index} out of range. PDF has {len(doc)} page(s).")

        page = doc[page_index]
        page_h = float(page.rect.height)
        needle = contains.lower() if contains else None

        anchors: list[TextAnchor] = []
        for span in iter_spans(page):
            text = (span.get("text") or "").strip()
            if len(text) < min_len:
                continue
            if needle and needle not in text.lower():
                continue

            bbox = to_bottom_left_bbox(list(span.get("bbox", [0, 0, 0, 0])), page_h)
            origin = span.get("origin")
            if origin:
                x, y = float(origin[0]), page_h - float(origin[1])
            else:
                x, y = bbox[0], bbox[1]
            anchors.append(
                TextAnchor(
                    text=text,
                    font=span.get("font"),
                    size=float(span.get("size") or 0.0),
                    x=x,
                    y=y,
                    bbox=bbox,
                )
            )
            if max_items and len(anchors) >= max_items:
                break

    return anchors


def suggest_field_mapping(
    anchor: TextAnchor,
    field: str,
    page: int = 0,
    gap: float = 6.0,
    font_size: float = 10.0,
) -> FieldMapping:
    """Place ``field`` just right of a printed label, on the label's baseline."""
    return FieldMapping(field=field, x=round(anchor.bbox[2] + gap, 1), y=round(anchor.y, 1), page=page, font_size=font_size)


def suggest_mapping(anchors: list[TextAnchor], page: int = 0) -> dict:
    """Starter mapping JSON with one placeholder field per anchor."""
    text = [
        suggest_field_mapping(anchor, field=f"field{idx:03d}", page=page)
        for idx, anchor in enumerate(anchors, start=1)
    ]
    return mapping_to_dict(TemplateMapping(text=text))


def annotate_anchors(template_path: Path, page_index: int, anchors: list[TextAnchor], output_path: Path) -> None:
    with fitz.open(str(template_path)) as doc:
        page = doc[page_index]
        page_h = float(page.rect.height)
        for idx, anchor in enumerate(anchors, start=1):
            x0, y0, x1, y1 = anchor.bbox
            rect = fitz.Rect(x0, page_h - y1, x1, page_h - y0)
            page.draw_rect(rect, color=(1, 0, 0), width=0.7)
            page.insert_text(rect.tl + fitz.Point(0, -2), f"{idx:03d}", fontsize=7, color=(1, 0, 0))
        output_path.parent.mkdir(parents=True, exist_ok=True)
        doc.save(str(output_path))


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Inspect PDF templates and coordinate mappings (label coordinates, validation, previews)."
    )
    parser.add_argument("--template", help="Path to template PDF.")
    parser.add_argument("--page", type=int, default=0, help="Zero-based page index.")
    parser.add_argument("--contains", help="Filter spans containing this text (case-insensitive).")
    parser.add_argument("--min-len", type=int, default=1, help="Minimum text length to include.")
    parser.add_argument("--max-items", type=int, default=0, help="Limit number of items (0 = no limit).")
    parser.add_argument("--output-json", help="Write extracted spans to JSON.")
    parser.add_argument("--annotate", help="Write the template with boxes and labels drawn on the spans.")
    parser.add_argument("--mapping", help="Template mapping JSON to validate or preview.")
    parser.add_argument("--preview", help="Write a mapping preview PDF (uses --template as background if given).")
    parser.add_argument("--grid", help="Write a coordinate grid PDF.")
    parser.add_argument("--grid-step", type=float, default=50.0, help="Grid spacing in points.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    template_path = Path(args.template) if args.template else None
    mapping = None
    if args.mapping:
        mapping = parse_template_mapping(Path(args.mapping).read_text(encoding="utf-8"))

    if args.grid:
        grid_path = Path(args.grid)
        grid_path.parent.mkdir(parents=True, exist_ok=True)
        grid_path.write_bytes(generate_coordinate_grid(spacing=args.grid_step))
        print(f"Wrote grid PDF: {grid_path}")

    if mapping is not None:
        result = validate_template_mapping(mapping)
        print(f"Mapping: {args.mapping}  valid={result.valid}")
        for error in result.errors:
            print(f"  [ERROR] {error}")
        for warning in result.warnings:
            print(f"  [WARN] {warning}")

        if args.preview:
            preview_path = Path(args.preview)
            preview_path.parent.mkdir(parents=True, exist_ok=True)
            template_bytes = template_path.read_bytes() if template_path else None
            preview_path.write_bytes(generate_mapping_preview(mapping, template_bytes=template_bytes))
            print(f"Wrote preview PDF: {preview_path}")

    if template_path is None or args.preview:
        return

    anchors = extract_text_anchors(
        template_path,
        page_index=args.page,
        contains=args.contains,
        min_len=args.min_len,
        max_items=args.max_items,
    )
    print(f"Template: {template_path}")
    print(f"Page: {args.page}  Matches: {len(anchors)}")
    for idx, anchor in enumerate(anchors, start=1):
        x0, y0, x1, y1 = anchor.bbox
        print(
            f"{idx:03d} | '{anchor.text}' | font={anchor.font} size={anchor.size:.1f} | "
            f"origin=({anchor.x:.2f},{anchor.y:.2f}) bbox=({x0:.2f},{y0:.2f},{x1:.2f},{y1:.2f})"
        )

    if args.output_json:
        output_path = Path(args.output_json)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "template": str(template_path),
            "page": args.page,
            "items": [asdict(anchor) for anchor in anchors],
            "suggested": suggest_mapping(anchors, args.page),
        }
        output_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        print(f"Wrote JSON: {output_path}")

    if args.annotate:
        annotate_anchors(template_path, args.page, anchors, Path(args.annotate))
        print(f"Wrote annotated PDF: {args.annotate}")


if __name__ == "__main__":
    main()
