"""
FastAPI Endpoints for the Clearance Scoring Engine
==================================================
RESTful API for scoring 510(k) clearance tables.

Base URL: http://localhost:8000

Endpoints:
- GET  /                          - API info
- GET  /api/health                - Health check
- POST /api/score/record          - Score one record against a header row
- POST /api/score/batch           - Score a table of records
- GET  /api/recap/{company_name}  - Cached company recap
- GET  /api/stats                 - Engine statistics
"""

import os
from datetime import datetime, timezone

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables
load_dotenv()

from ..config.settings import OUTPUT_COLUMNS, enrichment_allowed
from ..engine import ClearanceScoringEngine
from ..errors import ConfigurationError
from ..logger import get_logger
from ..models.schemas import BatchScoreRequest, ScoreRecordRequest

logger = get_logger(__name__)


# =============================================================================
# FastAPI App Initialization
# =============================================================================

app = FastAPI(
    title="510(k) Clearance Scoring Engine API",
    description="""
## Clearance Prioritization

Scores FDA 510(k) clearance records with a six-component weighted model
and attaches a cached company recap to each record.

### Quick Start:
1. Send the table header and rows to `/api/score/batch`
2. Set `allow_enrichment: true` to generate recaps for unseen companies
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Engine Initialization
# =============================================================================

def get_default_engine() -> ClearanceScoringEngine:
    api_key = os.getenv("OPENROUTER_API_KEY")
    return ClearanceScoringEngine(llm_api_key=api_key)


default_engine = get_default_engine()


def _enrichment_gate(requested: bool) -> bool:
    """Caller request AND the deployment gate (feature flag + credential)"""
    return requested and enrichment_allowed()


# =============================================================================
# Health & Info Endpoints
# =============================================================================

@app.get("/", tags=["Info"])
async def root():
    """API information and available endpoints"""
    return {
        "service": "510(k) Clearance Scoring Engine",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "Score Record": "POST /api/score/record",
            "Score Batch": "POST /api/score/batch",
            "Company Recap": "GET /api/recap/{company_name}",
            "Stats": "GET /api/stats",
            "Health": "GET /api/health",
        },
    }


@app.get("/api/health", tags=["Info"])
async def health_check():
    """Health check endpoint for monitoring"""
    return {
        "status": "healthy",
        "service": "510(k) Clearance Scoring Engine",
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "llm_configured": default_engine.enricher.configured,
        "enrichment_allowed": enrichment_allowed(),
        "cached_recaps": len(default_engine.recap_cache),
    }


# =============================================================================
# Scoring Endpoints
# =============================================================================

@app.post("/api/score/record", tags=["Scoring"])
def score_record(request: ScoreRecordRequest):
    """
    Score a single record.

    The header row is resolved for this record only; the recap cache
    is consulted but not persisted.
    """
    try:
        field_map = default_engine.resolve(request.header)
    except ConfigurationError as e:
        raise HTTPException(
            status_code=422,
            detail={"error": str(e), "missing_fields": e.missing_fields},
        )

    result = default_engine.score_record(
        request.record,
        field_map,
        allow_enrichment=_enrichment_gate(request.allow_enrichment),
        row_number=1,
    )
    return {
        "record_id": result.record_id,
        "company_name": result.company_name,
        "category": result.score.category.value,
        "score": result.score.raw_score,
        "output": result.to_output_dict(),
    }


@app.post("/api/score/batch", tags=["Scoring"])
def score_batch(request: BatchScoreRequest):
    """
    Score a table of records.

    - Header resolved once; missing required columns reject the whole batch
    - Recap cache loaded before and saved after the batch
    - Output rows follow input order
    """
    try:
        result = default_engine.score_batch(
            request.header,
            request.rows,
            allow_enrichment=_enrichment_gate(request.allow_enrichment),
            max_workers=request.max_workers,
        )
    except ConfigurationError as e:
        raise HTTPException(
            status_code=422,
            detail={"error": str(e), "missing_fields": e.missing_fields},
        )

    return {
        "total_processed": result.processed,
        "categories": {
            "High": result.high,
            "Moderate": result.moderate,
            "Low": result.low,
            "Almost None": result.almost_none,
            "Error": result.errors,
        },
        "enriched": result.enriched,
        "processing_time_ms": result.processing_time_ms,
        "columns": OUTPUT_COLUMNS,
        "rows": result.output_rows(),
        "record_ids": [r.record_id for r in result.results],
    }


@app.get("/api/recap/{company_name}", tags=["Recaps"])
async def get_recap(company_name: str):
    """Cached recap for a company (never triggers enrichment)"""
    recap = default_engine.recap_cache.get(company_name)
    if recap is None:
        raise HTTPException(status_code=404, detail="No cached recap for company")
    return {"company_name": company_name.strip(), "recap": recap}


# =============================================================================
# Statistics
# =============================================================================

@app.get("/api/stats", tags=["Info"])
async def get_stats():
    """Get engine statistics"""
    return {"default_engine": default_engine.get_stats()}


# =============================================================================
# Error Handlers
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error("Unhandled API error", path=str(request.url.path), error=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc),
            "type": type(exc).__name__,
        },
    )
