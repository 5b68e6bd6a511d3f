"""
Stage 2: Weighted Scoring
=========================
Deterministic six-component priority score for one clearance record.

Components:
- AC: advisory committee weight table
- PC: product code weight table
- KW: high-value keyword match on device name + statement
- ST: submission type weight table
- PT: processing time band
- GL: domestic vs foreign applicant

Negative factors (cosmetic, diagnostic) and a committee/keyword synergy
bonus are added before averaging over the six components.
"""

import math
import re
from typing import Any, Dict, List, Optional, Pattern, Sequence

from ..errors import RecordError
from ..logger import get_logger
from ..models.schemas import Category, ComponentWeights, ScoreResult
from ..models.scoring_config import ScoringConfig, create_default_scoring_config
from .stage1_field_map import FieldMap

logger = get_logger(__name__)

# Decimal places kept on the raw score; drops float noise so sums that land
# on a category boundary compare equal to it
RAW_SCORE_PRECISION = 10


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def parse_days(value: Any) -> Optional[float]:
    """Numeric processing time, or None for blanks and non-numeric values"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


class WeightedScoringStage:
    """
    Stage 2: Calculate the weighted priority score of a record.
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        """
        Initialize with scoring configuration or use defaults.
        """
        self.config = config or create_default_scoring_config()
        self.tables = self.config.weight_tables
        self.constants = self.config.constants
        self.thresholds = self.config.thresholds
        self.synergy_committees = {
            code.strip().upper() for code in self.constants.synergy_committees
        }
        self._compile_patterns()

    def _compile_patterns(self):
        """Pre-compile one alternation per keyword set"""
        keywords = self.config.keywords
        self.patterns: Dict[str, Optional[Pattern]] = {
            "high_value": self._compile(keywords.high_value),
            "cosmetic": self._compile(keywords.cosmetic),
            "diagnostic": self._compile(keywords.diagnostic),
            "therapeutic": self._compile(keywords.therapeutic),
        }

    @staticmethod
    def _compile(words: List[str]) -> Optional[Pattern]:
        cleaned = [w.strip() for w in words if w and w.strip()]
        if not cleaned:
            return None
        # Longest first so overlapping terms report the fuller match
        cleaned.sort(key=len, reverse=True)
        return re.compile("|".join(re.escape(w) for w in cleaned), re.IGNORECASE)

    def _matches(self, name: str, text: str) -> bool:
        pattern = self.patterns.get(name)
        return bool(pattern and pattern.search(text))

    def process(
        self,
        record: Sequence[Any],
        field_map: FieldMap,
        record_id: Optional[str] = None,
    ) -> ScoreResult:
        """
        Score one record. Never raises.

        Args:
            record: Positional row values
            field_map: Field map resolved for the batch
            record_id: Identifier used in log messages

        Returns:
            ScoreResult; the Error category when the record cannot be scored
        """
        try:
            return self._score(record, field_map)
        except Exception as e:
            error = e if isinstance(e, RecordError) else RecordError(
                f"Scoring failed: {e}", record_id=record_id
            )
            logger.warning(
                "Record could not be scored",
                record_id=record_id or error.record_id,
                field_name=error.field_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ScoreResult.error()

    def _score(self, record: Sequence[Any], field_map: FieldMap) -> ScoreResult:
        if not isinstance(record, (list, tuple)):
            raise RecordError(f"Record is not a row: {type(record).__name__}")

        fields = self._extract(record, field_map)
        combined_text = f"{fields['device_name']} {fields['statement']}"

        ac_wt = self.tables.advisory_committee.lookup(fields["advisory_committee"])
        pc_wt = self.tables.product_code.lookup(fields["product_code"])
        st_wt = self.tables.submission_type.lookup(fields["submission_type"])
        pt_wt = self._score_processing_time(fields["processing_time_days"])
        gl_wt = self._score_geography(fields["country"])

        keyword_match = self._matches("high_value", combined_text)
        kw_wt = (
            self.constants.kw_weight_match
            if keyword_match
            else self.constants.kw_weight_no_match
        )

        negative_factor = self._negative_factor(combined_text)
        synergy = self._synergy(fields["advisory_committee"], keyword_match)

        weights = ComponentWeights(
            ac=ac_wt, pc=pc_wt, kw=kw_wt, st=st_wt, pt=pt_wt, gl=gl_wt
        )
        raw = (weights.total() + negative_factor + synergy) / self.constants.component_count
        raw = max(0.0, round(raw, RAW_SCORE_PRECISION))

        return ScoreResult(
            raw_score=raw,
            category=self.categorize(raw),
            component_weights=weights,
            negative_factor=negative_factor,
            synergy_bonus=synergy,
        )

    # =========================================================================
    # Component scores
    # =========================================================================

    def _extract(self, record: Sequence[Any], field_map: FieldMap) -> Dict[str, Any]:
        """Pull the scoring inputs out of the row by header name"""
        extracted = {}
        for field in (
            "advisory_committee",
            "product_code",
            "device_name",
            "statement",
            "submission_type",
            "country",
        ):
            header = self.config.header_name(field)
            extracted[field] = _as_text(field_map.value(record, header))

        header = self.config.header_name("processing_time_days")
        extracted["processing_time_days"] = field_map.value(record, header)
        return extracted

    def _score_processing_time(self, value: Any) -> float:
        days = parse_days(value)
        c = self.constants
        if days is None:
            return c.pt_weight_default
        if days > c.pt_upper_threshold:
            return c.pt_weight_long
        if c.pt_lower_threshold <= days <= c.pt_upper_threshold:
            return c.pt_weight_band
        return c.pt_weight_default

    def _score_geography(self, country: str) -> float:
        if country.upper() == self.constants.domestic_country.upper():
            return self.constants.gl_weight_domestic
        return self.constants.gl_weight_foreign

    def _negative_factor(self, combined_text: str) -> float:
        """Cosmetic and diagnostic penalties stack; therapeutic cancels both"""
        if self._matches("therapeutic", combined_text):
            return 0.0

        factor = 0.0
        if self._matches("cosmetic", combined_text):
            factor += self.constants.nf_cosmetic
        if self._matches("diagnostic", combined_text):
            factor += self.constants.nf_diagnostic
        return factor

    def _synergy(self, committee: str, keyword_match: bool) -> float:
        if keyword_match and committee.upper() in self.synergy_committees:
            return self.constants.synergy_bonus
        return 0.0

    # =========================================================================
    # Helper functions
    # =========================================================================

    def categorize(self, raw_score: float) -> Category:
        """Map a raw score to its category (0.5 and 0.6 are Moderate)"""
        if raw_score > self.thresholds.high:
            return Category.HIGH
        if raw_score >= self.thresholds.moderate:
            return Category.MODERATE
        if raw_score >= self.thresholds.low:
            return Category.LOW
        return Category.ALMOST_NONE

    def record_id(self, record: Sequence[Any], field_map: FieldMap) -> Optional[str]:
        """Record identifier for logging, if the header carries one"""
        header = self.config.header_name("record_id")
        try:
            value = _as_text(field_map.value(record, header))
        except TypeError:
            return None
        return value or None
