"""
GenomeCRISPR Web API

FastAPI application serving HTML search pages and the JSON REST API over
the same search service.
"""

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from typing import Any, Dict, Optional
from pathlib import Path
import logging
import time
import uvicorn

from genomecrispr import __version__
from genomecrispr.config import get_config
from genomecrispr.core.errors import (
    GeneNotFoundError,
    InvalidParameterError,
    RecordNotFoundError,
    StorageError,
)
from genomecrispr.db.database import SQLITE_MAX_INT, SQLITE_MIN_INT, CrisprDatabase
from genomecrispr.export.exporter import (
    build_export_request,
    export_results,
    parse_export_format,
)
from genomecrispr.models.data_classes import SearchRequest, SearchResults
from genomecrispr.models.enums import SortField
from genomecrispr.search.service import CrisprSearchService
from genomecrispr.views.pagination import parse_search_request

logger = logging.getLogger(__name__)


app = FastAPI(
    title="GenomeCRISPR",
    description="CRISPR screen data warehouse",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

TEMPLATES_DIR = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def fmt_float(value: Optional[float], digits: int = 3) -> str:
    """Jinja2 filter: fixed-precision number, or an en dash for missing values."""
    if value is None:
        return "\u2013"
    return f"{value:.{digits}f}"


templates.env.filters["fmt_float"] = fmt_float

ALLOWED_SORT_FIELDS = [field.value for field in SortField]
DATABASE_ERROR = "Database error occurred"


# =============================================================================
# Helpers
# =============================================================================

def open_database() -> CrisprDatabase:
    """Open a per-request read-only connection to the configured database."""
    return CrisprDatabase(get_config().db_path)


def _parse_request(request: Request) -> SearchRequest:
    pagination = get_config().pagination
    return parse_search_request(
        request.query_params,
        default_page_size=pagination.default_page_size,
        max_page_size=pagination.max_page_size,
    )


def _parse_record_id(record_id: str) -> int:
    try:
        rid = int(record_id)
    except ValueError:
        raise InvalidParameterError("Invalid record ID")
    if not SQLITE_MIN_INT <= rid <= SQLITE_MAX_INT:
        raise InvalidParameterError("Invalid record ID")
    return rid


def _results_payload(results: SearchResults) -> Dict[str, Any]:
    """Shape a search result page for the JSON API."""
    return {
        "data": [item.model_dump(mode="json") for item in results.results],
        "pagination": {
            "current_page": results.page,
            "total_pages": results.total_pages,
            "total_results": results.total_rows,
            "limit": results.page_size,
            "has_next": results.has_next,
            "has_prev": results.has_prev,
        },
        "filters": {
            **results.filters.model_dump(),
            "sort_by": results.sort_by,
            "sort_order": results.sort_order,
            "view": results.view.value,
        },
    }


def _storage_failure(e: StorageError) -> HTTPException:
    logger.error(f"Storage failure: {e}", exc_info=e)
    return HTTPException(status_code=500, detail="Internal server error")


# =============================================================================
# Middleware
# =============================================================================

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and duration of every request."""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)"
    )
    return response


# =============================================================================
# HTML Pages
# =============================================================================

@app.get("/", response_class=HTMLResponse)
async def index(request: Request):
    """Search page with gene-level results."""
    search = _parse_request(request)
    context: Dict[str, Any] = {"search": search, "results": None, "error": None}
    try:
        with open_database() as db:
            context["results"] = CrisprSearchService(db).search_genes(search)
    except StorageError as e:
        logger.error(f"Storage failure on search page: {e}")
        context["error"] = DATABASE_ERROR
    return templates.TemplateResponse(request, "index.html", context)


@app.get("/details/{record_id}", response_class=HTMLResponse)
async def details(request: Request, record_id: str):
    """Single measurement page."""
    context: Dict[str, Any] = {"data": None, "error": None}
    status_code = 200
    try:
        with open_database() as db:
            context["data"] = CrisprSearchService(db).get_record(_parse_record_id(record_id))
    except InvalidParameterError as e:
        context["error"], status_code = str(e), 400
    except RecordNotFoundError:
        context["error"], status_code = "Record not found", 404
    except StorageError as e:
        logger.error(f"Storage failure on details page: {e}")
        context["error"], status_code = DATABASE_ERROR, 500
    return templates.TemplateResponse(request, "details.html", context, status_code=status_code)


@app.get("/gene/{symbol}", response_class=HTMLResponse)
async def gene_overview(request: Request, symbol: str):
    """Gene overview page: cell lines and sgRNAs of one gene."""
    context: Dict[str, Any] = {"gene": None, "error": None}
    status_code = 200
    try:
        with open_database() as db:
            context["gene"] = CrisprSearchService(db).get_gene(symbol)
    except GeneNotFoundError:
        context["error"], status_code = "Gene not found", 404
    except StorageError as e:
        logger.error(f"Storage failure on gene page: {e}")
        context["error"], status_code = DATABASE_ERROR, 500
    return templates.TemplateResponse(request, "gene_overview.html", context, status_code=status_code)


# =============================================================================
# API Endpoints
# =============================================================================

@app.get("/api/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/api/records")
async def list_records(request: Request):
    """Paginated search; ``view=genes`` (default) or ``view=records``."""
    search = _parse_request(request)
    if search.sort_by not in ALLOWED_SORT_FIELDS:
        return JSONResponse(
            status_code=400,
            content={"detail": "Invalid sort field", "allowed_fields": ALLOWED_SORT_FIELDS},
        )
    try:
        with open_database() as db:
            results = CrisprSearchService(db).search(search)
    except StorageError as e:
        raise _storage_failure(e)
    return _results_payload(results)


@app.get("/api/records/{record_id}")
async def get_record(record_id: str):
    """Get a single measurement by ID."""
    try:
        rid = _parse_record_id(record_id)
        with open_database() as db:
            record = CrisprSearchService(db).get_record(rid)
    except InvalidParameterError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="Record not found")
    except StorageError as e:
        raise _storage_failure(e)
    return {"data": record.model_dump(mode="json")}


@app.get("/api/genes/{symbol}")
async def get_gene(symbol: str):
    """Get the hierarchical view of one gene."""
    try:
        with open_database() as db:
            view = CrisprSearchService(db).get_gene(symbol)
    except GeneNotFoundError:
        raise HTTPException(status_code=404, detail="Gene not found")
    except StorageError as e:
        raise _storage_failure(e)
    return {"data": view.model_dump(mode="json")}


@app.get("/api/stats")
async def stats():
    """Dataset statistics."""
    try:
        with open_database() as db:
            result = CrisprSearchService(db).stats()
    except StorageError as e:
        raise _storage_failure(e)
    return result.model_dump(mode="json")


@app.get("/api/search/suggest")
async def suggest(q: str = "", limit: Optional[str] = None):
    """Autocomplete gene symbols and Ensembl IDs."""
    try:
        with open_database() as db:
            suggestions = CrisprSearchService(db).suggest(q, limit)
    except StorageError as e:
        raise _storage_failure(e)
    return {"suggestions": [s.model_dump() for s in suggestions]}


@app.get("/api/export")
async def export(request: Request):
    """Export gene-level search results as JSON or CSV."""
    pagination = get_config().pagination
    try:
        fmt = parse_export_format(request.query_params.get("format"))
        search = build_export_request(
            request.query_params,
            default_size=pagination.default_export_size,
            max_size=pagination.max_export_size,
        )
        with open_database() as db:
            payload = export_results(CrisprSearchService(db), search, fmt)
    except InvalidParameterError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError as e:
        raise _storage_failure(e)

    return Response(
        content=payload.content,
        media_type=payload.media_type,
        headers={"Content-Disposition": f"attachment; filename={payload.filename}"},
    )


if __name__ == "__main__":
    config = get_config()
    print("Starting GenomeCRISPR Web Server...")
    print(f"Open http://{config.api_host}:{config.api_port} in your browser")
    uvicorn.run(app, host=config.api_host, port=config.api_port)
