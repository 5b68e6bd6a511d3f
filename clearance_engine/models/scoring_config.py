"""
Scoring Configuration Models

Read-only weight tables and keyword sets consumed by the scoring stage.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..config.settings import (
    CATEGORY_THRESHOLDS,
    DEFAULT_KEYWORDS,
    DEFAULT_WEIGHT_TABLES,
    FIELD_NAMES,
    REQUIRED_FIELDS,
    SCORING_CONSTANTS,
)


def _normalize_code(code) -> str:
    if code is None:
        return ""
    return str(code).strip().upper()


class WeightTable(BaseModel):
    """Code -> weight lookup with a default for absent codes"""
    model_config = ConfigDict(frozen=True)

    default: float = 0.50
    weights: Dict[str, float] = Field(default_factory=dict)

    def lookup(self, code) -> float:
        """Case-insensitive lookup; blank or unknown codes get the default"""
        key = _normalize_code(code)
        if not key:
            return self.default
        for table_code, weight in self.weights.items():
            if _normalize_code(table_code) == key:
                return weight
        return self.default


class WeightTables(BaseModel):
    """Weight tables for the three coded inputs"""
    model_config = ConfigDict(frozen=True)

    advisory_committee: WeightTable = Field(default_factory=WeightTable)
    product_code: WeightTable = Field(default_factory=WeightTable)
    submission_type: WeightTable = Field(default_factory=WeightTable)


class KeywordSets(BaseModel):
    """Case-insensitive keyword sets tested against device name + statement"""
    model_config = ConfigDict(frozen=True)

    high_value: List[str] = Field(default_factory=list)
    cosmetic: List[str] = Field(default_factory=list)
    diagnostic: List[str] = Field(default_factory=list)
    therapeutic: List[str] = Field(default_factory=list)


class ScoringConstants(BaseModel):
    """Fixed weights and bands of the scoring formula"""
    model_config = ConfigDict(frozen=True)

    pt_upper_threshold: float = 172
    pt_lower_threshold: float = 162
    pt_weight_long: float = 0.65
    pt_weight_band: float = 0.60
    pt_weight_default: float = 0.50
    domestic_country: str = "US"
    gl_weight_domestic: float = 0.60
    gl_weight_foreign: float = 0.50
    kw_weight_match: float = 0.85
    kw_weight_no_match: float = 0.20
    nf_cosmetic: float = -2.0
    nf_diagnostic: float = -0.2
    synergy_committees: List[str] = Field(default_factory=lambda: ["OR", "NE"])
    synergy_bonus: float = 0.15
    component_count: int = 6


class CategoryThresholds(BaseModel):
    """Raw score boundaries for the priority categories"""
    model_config = ConfigDict(frozen=True)

    high: float = 0.6
    moderate: float = 0.5
    low: float = 0.4


class ScoringConfig(BaseModel):
    """Complete scoring configuration (the weight/keyword store)"""
    model_config = ConfigDict(frozen=True)

    name: str = "Default 510(k) scoring"
    field_names: Dict[str, str] = Field(default_factory=lambda: dict(FIELD_NAMES))
    required_fields: List[str] = Field(default_factory=lambda: list(REQUIRED_FIELDS))
    weight_tables: WeightTables = Field(default_factory=WeightTables)
    keywords: KeywordSets = Field(default_factory=KeywordSets)
    constants: ScoringConstants = Field(default_factory=ScoringConstants)
    thresholds: CategoryThresholds = Field(default_factory=CategoryThresholds)

    def header_name(self, field: str) -> str:
        """Header name for a logical field (falls back to the field itself)"""
        return self.field_names.get(field, field)

    def required_header_names(self) -> List[str]:
        return [self.header_name(f) for f in self.required_fields]


def create_default_scoring_config(
    high_value_keywords: Optional[List[str]] = None,
    field_names: Optional[Dict[str, str]] = None,
) -> ScoringConfig:
    """
    Factory function to create a scoring config from the settings defaults
    """
    keywords = dict(DEFAULT_KEYWORDS)
    if high_value_keywords is not None:
        keywords["high_value"] = high_value_keywords

    names = dict(FIELD_NAMES)
    if field_names:
        names.update(field_names)

    return ScoringConfig(
        field_names=names,
        weight_tables=WeightTables(**DEFAULT_WEIGHT_TABLES),
        keywords=KeywordSets(**keywords),
        constants=ScoringConstants(**SCORING_CONSTANTS),
        thresholds=CategoryThresholds(**CATEGORY_THRESHOLDS),
    )


def load_scoring_config(path: Union[str, Path]) -> ScoringConfig:
    """
    Load a user-edited JSON configuration.

    Keys missing from the file keep the settings defaults at every level,
    so a single weight-table code can be overridden on its own.
    """
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)

    base = create_default_scoring_config().model_dump()
    return ScoringConfig.model_validate(_merge(base, data))


def _merge(base: Dict, overrides: Dict) -> Dict:
    """Overlay nested dicts key by key; any other value replaces the default"""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged
