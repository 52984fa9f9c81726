"""
Runtime configuration for the document engine.

Values come from the process environment; a ``.env`` file next to the code
is loaded first so local development does not need exported variables.

Environment variables:
    TEMPLATES_DIR                –  optional override directory for PDF templates
    PDF_TEMPLATES_PRIMARY_DIR    –  primary template directory (default: ./templates)
    PDF_TEMPLATES_FALLBACK_DIR   –  secondary template directory (default: ../plantillas)
    DOCUMENT_LOGO_PATH           –  logo drawn by the generic document layout
    DOCUMENT_ORGANIZATION        –  organization name printed in footers
    LOG_LEVEL                    –  logging level for the service and CLIs
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parent

load_dotenv(ROOT_DIR / ".env")

DEFAULT_ORGANIZATION = "NeuroMedic - Neurocirujanos"


def primary_templates_dir() -> Path:
    return Path(os.environ.get("PDF_TEMPLATES_PRIMARY_DIR") or ROOT_DIR / "templates")


def fallback_templates_dir() -> Path:
    return Path(os.environ.get("PDF_TEMPLATES_FALLBACK_DIR") or ROOT_DIR.parent / "plantillas")


def template_search_dirs() -> list[Path]:
    """Ordered template directories: primary, env override, fallback."""
    dirs = [primary_templates_dir()]
    override = os.environ.get("TEMPLATES_DIR", "").strip()
    if override:
        dirs.append(Path(override))
    dirs.append(fallback_templates_dir())
    return dirs


def logo_path() -> Path:
    return Path(os.environ.get("DOCUMENT_LOGO_PATH") or ROOT_DIR / "assets" / "logo.jpg")


def organization_name() -> str:
    return os.environ.get("DOCUMENT_ORGANIZATION", "").strip() or DEFAULT_ORGANIZATION


def configure_logging(level: str | None = None) -> None:
    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
