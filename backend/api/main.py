"""
FastAPI application for the Lexiquery backend.
Thin transport adapter: every endpoint forwards to QueryEngine and only
handles (de)serialisation.
"""

import os
import threading
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from api.models import (
    CacheRefreshResponse,
    ExtractRequest,
    ExtractResponse,
    ProcessQueryResponse,
    QueryRequest,
    SuggestionsRequest,
    SuggestionsResponse,
)
from core_engine import QueryEngine
from utils.config_loader import get_config, print_startup_validation

VERSION = "1.0.0"

app = FastAPI(
    title="Lexiquery API",
    description="Natural-language lookups over the business tables",
    version=VERSION,
)

# Configure CORS for frontend
ALLOWED_ORIGINS = list(get_config().api.allowed_origins)

FRONTEND_URL = os.getenv("FRONTEND_URL")
if FRONTEND_URL:
    ALLOWED_ORIGINS.append(FRONTEND_URL.rstrip("/"))

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Engine
# =============================================================================

_engine: Optional[QueryEngine] = None
_engine_lock = threading.Lock()


def get_engine() -> QueryEngine:
    """Dependency returning the process engine, built from settings on first use."""
    global _engine

    if _engine is not None:
        return _engine

    with _engine_lock:
        if _engine is None:
            _engine = QueryEngine.from_config()
        return _engine


# =============================================================================
# Health Check
# =============================================================================

@app.get("/")
async def root():
    """Basic health check endpoint"""
    return {"status": "ok", "message": "Lexiquery API is running", "version": VERSION}


@app.get("/api/health")
def health_check(engine: QueryEngine = Depends(get_engine)):
    """Status of the datastore and the domain value cache."""
    health = {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": VERSION,
        "cache": {
            "loaded": engine.cache.is_loaded,
            "values_by_category": engine.cache.stats(),
        },
    }
    try:
        health["tables"] = engine.store.list_tables()
    except Exception as e:
        print(f"[API] Health check could not list tables: {e}")
        health["status"] = "degraded"
        health["tables"] = []
        health["error"] = str(e)
    return health


# =============================================================================
# Pipeline
# =============================================================================

@app.post("/api/extract", response_model=ExtractResponse)
def extract_entities(request: ExtractRequest, engine: QueryEngine = Depends(get_engine)):
    """Tag the text without running any query."""
    entities = engine.extract_entities(request.text, user_id=request.user_id)
    return {"entities": [e.to_dict() for e in entities]}


@app.post("/api/query", response_model=ProcessQueryResponse)
def process_query(request: QueryRequest, engine: QueryEngine = Depends(get_engine)):
    """
    Run the full pipeline.

    Pipeline failures still return 200 with `error` set; the request itself
    was valid.
    """
    if not request.text or not request.text.strip():
        raise HTTPException(status_code=400, detail="Query text is required")

    print(f"[API] Query: {request.text[:80]}")
    result = engine.process_query(request.text, user_id=request.user_id,
                                  timeout_seconds=request.timeout_seconds)

    if result.get("error"):
        print(f"[API] Query failed: {result['error']}")
    else:
        print(f"[API] Query success - Tables: {result['target_tables']}, Rows: {result['total_rows']}")
    return result


@app.post("/api/suggestions", response_model=SuggestionsResponse)
def suggestions(request: SuggestionsRequest, engine: QueryEngine = Depends(get_engine)):
    return {"suggestions": engine.get_suggestions(request.query, category=request.category, limit=request.limit)}


@app.post("/api/cache/refresh", response_model=CacheRefreshResponse)
def refresh_cache(engine: QueryEngine = Depends(get_engine)):
    values = engine.refresh_domain_cache()
    errors = dict(engine.cache.last_errors)
    return {"status": "partial" if errors else "ok", "values_by_category": values, "errors": errors}


# =============================================================================
# Lifecycle Events
# =============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize resources on startup"""
    print("=" * 60)
    print(f"  Lexiquery API v{VERSION} - Starting up...")
    print("=" * 60)
    print_startup_validation()
    print()
    print("  Endpoints:")
    print("  - POST /api/extract        (tagging only)")
    print("  - POST /api/query          (full pipeline)")
    print("  - POST /api/suggestions")
    print("  - POST /api/cache/refresh")
    print("  - GET  /api/health")
    print("=" * 60)


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup resources on shutdown"""
    print("[API] Lexiquery API shutting down...")
    if _engine is not None:
        _engine.store.close()


if __name__ == "__main__":
    import uvicorn
    config = get_config()
    host = os.getenv("BACKEND_HOST", config.api.host)
    port = int(os.getenv("BACKEND_PORT", os.getenv("PORT", str(config.api.port))))
    uvicorn.run(app, host=host, port=port)
