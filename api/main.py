"""
docsearch API — Main Application

POST /compile   — Validate a rule expression
POST /evaluate  — Score a document against a rule expression
POST /classify  — Score a document against every loaded rule
GET  /rules     — List loaded rules
GET  /health    — Health check
"""

from __future__ import annotations

import threading
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from docsearch import __version__
from docsearch.cache import regex_cache
from docsearch.compiler import compile as compile_pattern
from docsearch.config import settings
from docsearch.engine import engine
from docsearch.errors import CompileError
from docsearch.logging import setup_logging, get_logger
from docsearch.pattern import Pattern
from docsearch.rules import RuleBook, pick_best
from docsearch.schemas.match import (
    CompileRequest,
    CompileResponse,
    EvaluateRequest,
    EvaluateResponse,
    ClassifyRequest,
    ClassifyResponse,
    RulesResponse,
    HealthResponse,
)

logger = get_logger("api")


# Rule book loaded at startup (empty when DOCSEARCH_RULES_PATH is unset)
rule_book = RuleBook()

# Compiled expressions keyed by source text
_compiled: dict[str, Pattern] = {}
_compiled_lock = threading.Lock()
_MAX_COMPILED = 1024


def _get_pattern(source: str) -> Pattern:
    """Compile once per distinct source. Raises CompileError."""
    with _compiled_lock:
        pattern = _compiled.get(source)
    if pattern is not None:
        return pattern
    pattern = compile_pattern(source)
    with _compiled_lock:
        if len(_compiled) >= _MAX_COMPILED:
            del _compiled[next(iter(_compiled))]
        _compiled[source] = pattern
    return pattern


def load_rule_book(path: str) -> RuleBook:
    target = Path(path)
    if target.is_dir():
        return RuleBook.from_directory(target)
    return RuleBook.from_file(target)


# ============================================================
# STARTUP / SHUTDOWN
# ============================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load rules on startup."""
    global rule_book
    setup_logging()
    if settings.RULES_PATH:
        rule_book = load_rule_book(settings.RULES_PATH)
    logger.info("docsearch API starting",
                extra={"rules_count": len(rule_book), "workers": engine.workers})
    yield
    engine.close()
    logger.info("docsearch API shutting down")


app = FastAPI(
    title="docsearch API",
    description="Rule DSL for scoring documents line by line",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",")],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=False,
)


# ============================================================
# ERROR HANDLERS
# ============================================================

@app.exception_handler(CompileError)
async def compile_error_handler(request: Request, exc: CompileError):
    """Rule expressions that don't compile are client errors."""
    return JSONResponse(status_code=422, content={"detail": exc.to_dict()})


@app.exception_handler(Exception)
async def global_error_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions — return structured error, don't leak internals."""
    logger.error(
        f"Unhandled exception: {type(exc).__name__}",
        extra={"error": str(exc), "path": request.url.path, "method": request.method},
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error. The document could not be scored."},
    )


# ============================================================
# ROUTES
# ============================================================

@app.post("/compile", response_model=CompileResponse)
def compile_source(request: CompileRequest):
    """Check that a rule expression compiles. Errors are reported, not raised."""
    try:
        _get_pattern(request.source)
    except CompileError as exc:
        return {"valid": False, "error": exc.to_dict()}
    return {"valid": True}


@app.post("/evaluate", response_model=EvaluateResponse)
def evaluate_document(request: EvaluateRequest):
    """Score a document against a single rule expression."""
    pattern = _get_pattern(request.source)
    lines = request.get_lines()
    start = time.perf_counter()
    score = engine.evaluate(pattern, lines)
    logger.debug(
        "Evaluated expression",
        extra={
            "score": score,
            "lines_count": len(lines),
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
        },
    )
    return {"score": score, "lines_count": len(lines)}


@app.post("/classify", response_model=ClassifyResponse)
def classify_document(request: ClassifyRequest):
    """Score a document against every loaded rule."""
    if len(rule_book) == 0:
        raise HTTPException(409, "No rules loaded. Set DOCSEARCH_RULES_PATH.")
    lines = request.get_lines()
    results = rule_book.classify(lines)
    best = pick_best(results)

    return {
        "lines_count": len(lines),
        "best_match": best.rule_id if best else None,
        "results": [r.to_dict() for r in results],
    }


@app.get("/rules", response_model=RulesResponse)
def get_rules():
    """Return all loaded rules with their source."""
    rules = [rule.to_dict() for rule in rule_book]
    return {"total": len(rules), "rules": rules}


@app.get("/health", response_model=HealthResponse)
def health():
    """Health check."""
    return {
        "status": "operational",
        "version": __version__,
        "rules_loaded": len(rule_book),
        "workers": engine.workers,
        "regex_cache": regex_cache.stats,
    }


# --- Request Logging Middleware ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every API request with method, path, status, duration."""
    path = request.url.path
    if path == "/health":
        return await call_next(request)

    start = time.time()
    response = await call_next(request)
    duration_ms = round((time.time() - start) * 1000, 1)

    logger.info(
        f"{request.method} {path} → {response.status_code} ({duration_ms}ms)",
        extra={
            "method": request.method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=settings.HOST, port=settings.PORT)
