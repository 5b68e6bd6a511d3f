"""
Pydantic schemas for the Clearance Scoring Engine
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config.settings import OUTPUT_COLUMNS


# =============================================================================
# ENUMS
# =============================================================================

class Category(str, Enum):
    """Priority category derived from the raw score"""
    HIGH = "High"
    MODERATE = "Moderate"
    LOW = "Low"
    ALMOST_NONE = "Almost None"
    ERROR = "Error"


# =============================================================================
# SCORING RESULTS
# =============================================================================

class ComponentWeights(BaseModel):
    """The six weighted components of a score"""
    model_config = ConfigDict(frozen=True)

    ac: float = 0.0  # Advisory committee
    pc: float = 0.0  # Product code
    kw: float = 0.0  # High-value keywords
    st: float = 0.0  # Submission type
    pt: float = 0.0  # Processing time
    gl: float = 0.0  # Geography

    def total(self) -> float:
        return self.ac + self.pc + self.kw + self.st + self.pt + self.gl


class ScoreResult(BaseModel):
    """Result of scoring one clearance record"""
    model_config = ConfigDict(frozen=True)

    raw_score: float
    category: Category
    component_weights: ComponentWeights
    negative_factor: float = 0.0
    synergy_bonus: float = 0.0

    @property
    def score_percent(self) -> float:
        return self.raw_score * 100

    @classmethod
    def error(cls) -> "ScoreResult":
        """Result returned when a record cannot be scored"""
        return cls(
            raw_score=0.0,
            category=Category.ERROR,
            component_weights=ComponentWeights(),
        )


class ScoredRecord(BaseModel):
    """One record's score plus its company recap, ready to write back"""
    model_config = ConfigDict(frozen=True)

    row_number: int
    record_id: Optional[str] = None
    company_name: str = ""
    score: ScoreResult
    recap: str = ""

    def to_output_row(self) -> List[Any]:
        """Values in OUTPUT_COLUMNS order"""
        weights = self.score.component_weights
        return [
            weights.ac,
            weights.pc,
            weights.kw,
            weights.st,
            weights.pt,
            weights.gl,
            self.score.negative_factor,
            self.score.synergy_bonus,
            self.score.raw_score,
            self.score.score_percent,
            self.score.category.value,
            self.recap,
        ]

    def to_output_dict(self) -> Dict[str, Any]:
        return dict(zip(OUTPUT_COLUMNS, self.to_output_row()))


# =============================================================================
# RECAP CACHE
# =============================================================================

class CacheEntry(BaseModel):
    """A persisted company recap"""
    company_name: str
    recap_text: str
    last_updated: Optional[datetime] = None


# =============================================================================
# BATCH RESULT
# =============================================================================

class BatchScoreResult(BaseModel):
    """Result from batch scoring"""
    processed: int
    high: int = 0
    moderate: int = 0
    low: int = 0
    almost_none: int = 0
    errors: int = 0
    enriched: int = 0
    cache_entries_loaded: int = 0
    cache_entries_saved: int = 0
    processing_time_ms: float = 0
    results: List[ScoredRecord] = Field(default_factory=list)

    def output_rows(self) -> List[List[Any]]:
        return [r.to_output_row() for r in self.results]


# =============================================================================
# API REQUEST SCHEMAS
# =============================================================================

class ScoreRecordRequest(BaseModel):
    """Request to score a single record against its header row"""
    header: List[str]
    record: List[Any]
    allow_enrichment: bool = False


class BatchScoreRequest(BaseModel):
    """Request to score a table of records"""
    header: List[str]
    rows: List[List[Any]]
    allow_enrichment: bool = False
    max_workers: int = Field(1, ge=1, le=16)
