"""
KB Search API - FastAPI routes over KnowledgeBaseService

Endpoints:
- GET  /health                    Service status and index info
- GET  /v1/kb/search              Search with query parameters
- POST /v1/kb/search              Search with a JSON SearchRequest body
- GET  /v1/kb/articles/{id}       Read one published article from the current index
- POST /v1/kb/match               Match a ticket against trigger patterns
- POST /v1/kb/patterns/reload     Reload and recompile pattern definitions

Every /v1 response uses the same envelope:
    {"success": true, "data": {...}}
    {"success": false, "error": {"type": "...", "message": "...", "correlation_id": "..."}}
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .dto import HealthResponse
from .exceptions import InternalError, NotFoundError, ValidationError
from .service import KnowledgeBaseService

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"


def error_response(status_code: int, error_type: str, message: str, correlation_id: Optional[str] = None) -> JSONResponse:
    error: Dict[str, Any] = {"type": error_type, "message": message}
    if correlation_id:
        error["correlation_id"] = correlation_id
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def get_service(request: Request) -> KnowledgeBaseService:
    return request.app.state.service


def create_app(service: KnowledgeBaseService) -> FastAPI:
    """
    Build the FastAPI application around a configured service.

    Args:
        service: KnowledgeBaseService with its repositories already wired
    """
    app = FastAPI(
        title="KB Search API",
        description="Knowledge base article search and ticket pattern matching",
        version=APP_VERSION,
    )
    app.state.service = service
    app.state.started_at = datetime.now(timezone.utc)

    # CORS middleware for frontend integration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure properly in production
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        logger.info(f"Rejected {request.method} {request.url.path}: {exc.message}")
        return error_response(status.HTTP_400_BAD_REQUEST, "ValidationError", exc.message)

    @app.exception_handler(NotFoundError)
    async def not_found_error_handler(request: Request, exc: NotFoundError):
        logger.info(f"Not found {request.method} {request.url.path}: {exc.message}")
        return error_response(status.HTTP_404_NOT_FOUND, "NotFoundError", exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        problems = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        message = f"Invalid request: {'; '.join(problems)}"
        logger.info(f"Rejected {request.method} {request.url.path}: {message}")
        return error_response(status.HTTP_400_BAD_REQUEST, "ValidationError", message)

    @app.exception_handler(InternalError)
    async def internal_error_handler(request: Request, exc: InternalError):
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "InternalError", exc.message, exc.correlation_id
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        error = InternalError()
        logger.error(
            f"Unhandled error on {request.method} {request.url.path} "
            f"[correlation_id={error.correlation_id}]: {exc}",
            exc_info=exc,
        )
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "InternalError", error.message, error.correlation_id
        )

    @app.get("/", response_model=dict)
    def root():
        """Root endpoint"""
        return {
            "service": "KB Search API",
            "version": APP_VERSION,
            "status": "running",
            "docs": "/docs",
        }

    @app.get("/health", response_model=HealthResponse)
    def health(service: KnowledgeBaseService = Depends(get_service)):
        """Health check with index and pattern set info"""
        started_at = app.state.started_at
        uptime = (datetime.now(timezone.utc) - started_at).total_seconds()
        index_version = service.index_version

        return HealthResponse(
            status="healthy",
            version=APP_VERSION,
            started_at=started_at.isoformat(),
            uptime_seconds=round(uptime, 2),
            index_version=None if index_version is None else str(index_version),
            article_count=service.article_count,
            pattern_count=len(service.compiled_patterns().patterns),
        )

    @app.get("/v1/kb/search")
    def search_get(
        q: str = Query(default="", description="Search query"),
        category: Optional[str] = Query(default=None, description="Category filter, e.g. SECURITY"),
        tags: Optional[str] = Query(default=None, description="Comma-separated tag filter"),
        limit: Optional[int] = Query(default=None, description="Page size"),
        offset: Optional[int] = Query(default=None, description="Results to skip"),
        service: KnowledgeBaseService = Depends(get_service),
    ):
        """
        Search KB articles with query parameters.

        Example: `GET /v1/kb/search?q=password%20reset&category=ACCOUNT_MANAGEMENT&tags=password,login&limit=5`
        """
        request: Dict[str, Any] = {"query": q}
        if category:
            request["category"] = category
        if tags:
            request["tags"] = [tag.strip() for tag in tags.split(",") if tag.strip()]
        if limit is not None:
            request["limit"] = limit
        if offset is not None:
            request["offset"] = offset
        return {"success": True, "data": service.search(request)}

    @app.post("/v1/kb/search")
    def search_post(
        payload: Dict[str, Any] = Body(..., examples=[{"query": "password reset", "limit": 5}]),
        service: KnowledgeBaseService = Depends(get_service),
    ):
        """
        Search KB articles with a JSON body.

        **Body:** `query` (required), `category`, `tags`, `limit`, `offset`.

        **Response data:**
        - `results`: page of `{article, score, snippet, matched_terms, matched_field}`, best first
        - `total`: size of the full ranked list before pagination
        - `query`: normalized query
        - `related_searches`: tags of the top results
        """
        return {"success": True, "data": service.search(payload)}

    @app.get("/v1/kb/articles/{article_id}")
    def get_article(article_id: str, service: KnowledgeBaseService = Depends(get_service)):
        """Read one published article (title, body, category, tags) by id."""
        return {"success": True, "data": service.get_article(article_id)}

    @app.post("/v1/kb/match")
    def match_ticket(
        payload: Dict[str, Any] = Body(
            ...,
            examples=[{"ticket_id": "T-1001", "ticket_text": "VPN disconnects after a timeout"}],
        ),
        service: KnowledgeBaseService = Depends(get_service),
    ):
        """
        Match a ticket against the configured trigger patterns.

        **Response data:**
        - `matches`: up to top-K patterns with `confidence` in [0, 1], best first
        - `excluded_pattern_ids`: patterns skipped because their trigger failed to compile
        - `duplicate_pattern_ids`: ids defined more than once (first definition is used)
        - `top_article_id`: first suggested article of the best match
        """
        return {"success": True, "data": service.match_ticket(payload)}

    @app.post("/v1/kb/patterns/reload")
    def reload_patterns(service: KnowledgeBaseService = Depends(get_service)):
        """Reload pattern definitions from the repository and recompile them."""
        compiled = service.reload_patterns()
        return {
            "success": True,
            "data": {
                "active_patterns": len(compiled.patterns),
                "excluded_pattern_ids": list(compiled.excluded_pattern_ids),
                "duplicate_pattern_ids": list(compiled.duplicate_pattern_ids),
            },
        }

    return app
