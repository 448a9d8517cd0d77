"""FastAPI application entry point."""

import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marksearch.config import get_settings
from marksearch.logging_config import clear_request_id, get_logger, set_request_id, setup_logging
from marksearch.models.error import ErrorResponse
from marksearch.models.search import (
    EmbeddingsGenerateResponse,
    SearchRequest,
    SearchResponse,
    SemanticSearchRequest,
    SemanticSearchResponse,
    SuggestionsResponse,
)
from marksearch.services.search_service import (
    SearchService,
    SearchServiceError,
    SearchValidationError,
)

# Setup logging configuration
setup_logging()
logger = get_logger(__name__)

# Load and validate configuration at startup
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown."""
    logger.info("Starting bookmark search service...")
    logger.info(
        f"Configuration: bookmarks_path={settings.bookmarks_path}, "
        f"embeddings={'openai' if settings.embeddings_enabled else 'fallback'}"
    )

    app.state.search_service = SearchService.from_settings(settings)

    logger.info("Bookmark search service started successfully")

    yield

    logger.info("Shutting down bookmark search service...")
    await app.state.search_service.close()
    logger.info("Bookmark search service shut down successfully")


app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="Fuzzy and semantic search over a personal bookmark collection",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_search_service(request: Request) -> SearchService:
    """Search service owned by the running application."""
    return request.app.state.search_service


def _error_response(
    request: Request, status_code: int, error: str, detail: str | None = None
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            detail=detail,
            timestamp=datetime.now(UTC),
            request_id=request_id,
        ).model_dump(mode="json"),
    )


# Request ID and error handling middleware
@app.middleware("http")
async def request_middleware(request: Request, call_next):
    """Add request ID tracking and error handling."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    set_request_id(request_id)

    try:
        logger.info(f"Request started: {request.method} {request.url.path}")
        response = await call_next(request)
        logger.info(
            f"Request completed: {request.method} {request.url.path} - Status: {response.status_code}"
        )
        return response
    except Exception as e:
        logger.error(
            f"Unhandled exception: {str(e)}",
            exc_info=True,
            extra={"path": request.url.path},
        )
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            error=str(e) or "Internal Server Error",
        )
    finally:
        clear_request_id()


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append(f"{field}: {error['msg']}")
    detail = "; ".join(errors)

    logger.warning(f"Validation error: {detail}", extra={"path": request.url.path})

    return _error_response(
        request, status.HTTP_422_UNPROCESSABLE_ENTITY, error="Validation Error", detail=detail
    )


@app.exception_handler(SearchValidationError)
async def search_validation_exception_handler(request: Request, exc: SearchValidationError):
    """Handle invalid search requests."""
    logger.warning(f"Search validation error: {str(exc)}")
    return _error_response(
        request, status.HTTP_400_BAD_REQUEST, error=str(exc), detail="Validation Error"
    )


@app.exception_handler(SearchServiceError)
async def search_service_exception_handler(request: Request, exc: SearchServiceError):
    """Handle search failures."""
    logger.error(f"Search service error: {str(exc)}")
    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, error=str(exc), detail="Search Error"
    )


# API Endpoints


@app.get("/health")
async def health_check(service: SearchService = Depends(get_search_service)):
    """Health check endpoint with embedding and index state.

    Returns:
        dict: Health status plus embedding method, cache size and index info
    """
    return {
        "status": "healthy",
        "service": "Bookmark Search",
        "version": settings.api_version,
        **service.health(),
    }


@app.post(
    "/api/search",
    response_model=SearchResponse,
    summary="Fuzzy search bookmarks",
    description="Weighted multi-field fuzzy search with filters, sorting, pagination and tag suggestions.",
)
async def search(
    request: SearchRequest,
    service: SearchService = Depends(get_search_service),
) -> SearchResponse:
    """Run a lexical search.

    An empty query matches every bookmark, so the same route serves
    filter-only browsing.
    """
    try:
        return await service.search(request)
    except (SearchValidationError, SearchServiceError):
        raise
    except Exception as e:
        logger.error(f"Unexpected error during search: {str(e)}", exc_info=True)
        raise SearchServiceError(str(e)) from e


@app.post(
    "/api/semantic-search",
    response_model=SemanticSearchResponse,
    summary="Semantic search bookmarks",
    description="Rank bookmarks by embedding similarity; falls back to local hash embeddings.",
)
async def semantic_search(
    request: SemanticSearchRequest,
    service: SearchService = Depends(get_search_service),
) -> SemanticSearchResponse:
    """Run a semantic search.

    Raises:
        SearchValidationError: If the query is empty (400)
    """
    try:
        return await service.semantic_search(request)
    except (SearchValidationError, SearchServiceError):
        raise
    except Exception as e:
        logger.error(f"Unexpected error during semantic search: {str(e)}", exc_info=True)
        raise SearchServiceError(str(e)) from e


@app.get(
    "/api/search/suggestions",
    response_model=SuggestionsResponse,
    summary="Search-box suggestions",
)
async def search_suggestions(
    q: str = Query(default="", description="Partial search input"),
    service: SearchService = Depends(get_search_service),
) -> SuggestionsResponse:
    """Matching tags, bookmark types and date presets for the search box."""
    try:
        suggestions = await service.suggest(q)
    except SearchServiceError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error building suggestions: {str(e)}", exc_info=True)
        raise SearchServiceError(str(e)) from e
    return SuggestionsResponse(suggestions=suggestions)


@app.post(
    "/api/embeddings/generate",
    response_model=EmbeddingsGenerateResponse,
    summary="Pre-warm the embedding cache",
)
async def generate_embeddings(
    service: SearchService = Depends(get_search_service),
) -> EmbeddingsGenerateResponse:
    """Embed every bookmark's title, notes and tags into the cache."""
    try:
        return await service.generate_embeddings()
    except SearchServiceError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error generating embeddings: {str(e)}", exc_info=True)
        raise SearchServiceError(str(e)) from e


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "marksearch.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
