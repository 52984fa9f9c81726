import logging
from pathlib import Path
from typing import Any, Literal

# settings loads .env, so it must be imported before anything reads os.environ.
import settings

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from coordinate_model import Diagnostics, TemplateMapping, parse_template_mapping
from document_overlay import TemplateError, generate_document, pdf_to_base64
from field_maps import get_template_mapping, list_available_templates
from generic_document import build_generic_document
from mapping_diagnostics import generate_coordinate_grid, generate_mapping_preview, validate_template_mapping

settings.configure_logging()
logger = logging.getLogger(__name__)

FALLBACK_WARNING = "No se pudo aplicar plantilla, se generó documento estándar"

app = FastAPI(title="Clinical Document API")

# ── CORS ──────────────────────────────────────────────────────────────────────
# Allow the front-end dev server to reach the API during development.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "message": "Request validation failed.",
            "detail": exc.errors(),
        },
    )


class GenerateDocumentRequest(BaseModel):
    template_id: str
    title: str | None = None
    mapping: dict[str, Any] | list[Any] | str | None = None
    text: dict[str, Any] = Field(default_factory=dict)
    checkboxes: dict[str, str | bool | None] = Field(default_factory=dict)
    format: Literal["pdf", "base64"] = "pdf"


class GenericDocumentRequest(BaseModel):
    title: str
    data: dict[str, Any] = Field(default_factory=dict)
    format: Literal["pdf", "base64"] = "pdf"


class MappingRequest(BaseModel):
    mapping: dict[str, Any] | list[Any] | str
    page_width: float = 595.0
    page_height: float = 842.0


def parse_mapping_or_400(raw: Any) -> TemplateMapping:
    try:
        return parse_template_mapping(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid mapping: {exc}") from exc


def pdf_response(pdf_bytes: bytes, filename: str, output_format: str, warnings: list[str], warning: str | None = None):
    if output_format == "base64":
        return {
            "success": True,
            "data": pdf_to_base64(pdf_bytes),
            "filename": filename,
            "size": len(pdf_bytes),
            "warning": warning,
            "warnings": warnings,
        }
    headers = {"Content-Disposition": f'inline; filename="{filename}"'}
    if warning:
        headers["X-Document-Warning"] = "template-fallback"
    return Response(content=pdf_bytes, media_type="application/pdf", headers=headers)


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/templates")
def list_templates() -> dict[str, list[str]]:
    return {"templates": list_available_templates()}


@app.post("/api/documents/generate")
def generate(request: GenerateDocumentRequest):
    """Compose a template document, falling back to the generic layout.

    A missing mapping or an unusable template never fails the request: the
    generic document is returned together with a soft warning.
    """
    if request.mapping is not None:
        mapping = parse_mapping_or_400(request.mapping)
    else:
        mapping = get_template_mapping(request.template_id) or TemplateMapping()

    title = request.title or Path(request.template_id).stem
    filename = f"{Path(request.template_id).stem or 'documento'}.pdf"
    diagnostics = Diagnostics()
    warning = None

    if mapping.is_empty():
        logger.info("No mapping for %s, using generic document", request.template_id)
        pdf_bytes = build_generic_document(title, {**request.checkboxes, **request.text})
        warning = FALLBACK_WARNING
    else:
        try:
            pdf_bytes = generate_document(
                request.template_id,
                mapping,
                request.text,
                request.checkboxes,
                diagnostics=diagnostics,
            )
        except TemplateError as exc:
            logger.warning("Template %s unusable (%s), using generic document", request.template_id, exc)
            pdf_bytes = build_generic_document(title, {**request.checkboxes, **request.text})
            warning = FALLBACK_WARNING

    return pdf_response(pdf_bytes, filename, request.format, diagnostics.warnings, warning)


@app.post("/api/documents/generic")
def generate_generic(request: GenericDocumentRequest):
    pdf_bytes = build_generic_document(request.title, request.data)
    return pdf_response(pdf_bytes, "documento.pdf", request.format, [])


@app.post("/api/mappings/validate")
def validate_mapping(request: MappingRequest) -> dict[str, Any]:
    mapping = parse_mapping_or_400(request.mapping)
    return validate_template_mapping(mapping, request.page_width, request.page_height).to_dict()


@app.post("/api/mappings/preview")
def preview_mapping(request: MappingRequest) -> Response:
    mapping = parse_mapping_or_400(request.mapping)
    pdf_bytes = generate_mapping_preview(mapping, request.page_width, request.page_height)
    return Response(content=pdf_bytes, media_type="application/pdf")


@app.get("/api/mappings/grid")
def coordinate_grid(page_width: float = 595.0, page_height: float = 842.0, spacing: float = 50.0) -> Response:
    if spacing <= 0:
        raise HTTPException(status_code=400, detail="spacing must be positive.")
    return Response(
        content=generate_coordinate_grid(page_width, page_height, spacing),
        media_type="application/pdf",
    )
