"""
HTTP API for running audits and exporting PDF reports.

Endpoints:
- POST /api/audit       {"url": "..."}      -> {"ok": true, "result": {...}}
- POST /api/audit/pdf   {"payload": {...}}  -> application/pdf attachment
- GET  /api/health                          -> {"ok": true, "in_flight": n}
"""

import asyncio
import logging
from typing import Any, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from seo_grader import __version__
from seo_grader.app import SEOGrader
from seo_grader.exceptions import AuditError

logger = logging.getLogger(__name__)


class AuditRequest(BaseModel):
    url: Optional[str] = None


class PdfRequest(BaseModel):
    payload: Optional[dict[str, Any]] = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


def _grader(request: Request) -> SEOGrader:
    return request.app.state.grader


router = APIRouter(prefix="/api", tags=["Audit"])


@router.post("/audit")
async def run_audit(body: AuditRequest, request: Request):
    url = (body.url or "").strip()
    if not url:
        return _error(400, "Missing URL parameter")

    logger.info("[AUDIT] Starting audit for: %s", url)
    try:
        report = await _grader(request).run_audit(url)
    except AuditError as exc:
        logger.error("[AUDIT] Audit failed for %s: %s", url, exc)
        return _error(500, str(exc))

    logger.info("[AUDIT] Completed successfully for: %s", url)
    return {"ok": True, "result": report.to_dict()}


@router.post("/audit/pdf")
async def export_pdf(body: PdfRequest, request: Request):
    if not body.payload:
        return _error(400, "Missing payload")

    renderer = _grader(request).renderer
    try:
        pdf_bytes = await asyncio.to_thread(renderer.render_pdf, body.payload)
    except Exception as exc:
        logger.error("[PDF] Error: %s", exc)
        return _error(500, str(exc) or "PDF rendering failed")
    if not pdf_bytes:
        return _error(500, "Empty PDF buffer")

    logger.info("[PDF] PDF generated (%d bytes)", len(pdf_bytes))
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": "attachment; filename=seo-audit.pdf"},
    )


@router.get("/health")
async def health(request: Request):
    return {"ok": True, "in_flight": len(_grader(request).orchestrator.registry)}


def create_app(grader: Optional[SEOGrader] = None) -> FastAPI:
    """Build the FastAPI application around an (initialized) :class:`SEOGrader`."""
    if grader is None:
        grader = SEOGrader()
    grader.initialize()

    app = FastAPI(
        title="SEO Grader API",
        description="Single-page SEO audits with letter grades.",
        version=__version__,
    )
    app.state.grader = grader
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app
