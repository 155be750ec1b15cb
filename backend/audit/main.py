import logging
import time
from urllib.parse import urlparse

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from audit.config import get_settings
from audit.errors import PdfRenderError
from audit.models import UserInfo
from audit.pdf import render_pdf
from audit.session import run_session

logger = logging.getLogger(__name__)

DEFAULT_INDUSTRY = "Agency"
DEFAULT_GOAL = "Conversion rate optimisation"

app = FastAPI(title="Audit Report API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[get_settings().cors_origin],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class GenerateAuditRequest(BaseModel):
    websiteUrl: str | None = None
    fullName: str | None = None
    email: str | None = None
    position: str | None = None
    industry: str | None = None
    goal: str | None = None


def _valid_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("[api] Unhandled error")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": str(exc)},
    )


@app.get("/api/health")
async def health():
    return {"status": "ok", "message": "Server is running"}


@app.post("/api/generate-audit")
async def generate_audit(request: GenerateAuditRequest):
    """Run an audit session and return the branded report as a PDF."""
    required = ("websiteUrl", "fullName", "email", "position")
    if not all(getattr(request, name) for name in required):
        return JSONResponse(
            status_code=400,
            content={"error": f"Missing required fields: {', '.join(required)}"},
        )
    if not _valid_url(request.websiteUrl):
        return JSONResponse(status_code=400, content={"error": "Invalid URL format"})

    industry = request.industry or DEFAULT_INDUSTRY
    goal = request.goal or DEFAULT_GOAL
    user_info = UserInfo(full_name=request.fullName, email=request.email, job_title=request.position)
    logger.info("[api] New audit request: %s (%s / %s) for %s",
                request.websiteUrl, industry, goal, request.email)

    result = await run_session(request.websiteUrl, industry, goal, user_info)
    if not result.success:
        logger.error("[api] Automation failed: %s", result.error)
        return JSONResponse(
            status_code=500,
            content={"error": f"Failed to generate audit report: {result.error}"},
        )

    try:
        pdf = await render_pdf(result.html, result.styles, user_info)
    except PdfRenderError as e:
        logger.error("[api] PDF generation failed: %s", e)
        return JSONResponse(
            status_code=500,
            content={"error": f"Failed to generate PDF: {e}"},
        )

    filename = f"website-audit-{int(time.time() * 1000)}.pdf"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
