"""
Stage 1: Field Map Resolution
=============================
Turns the header row of a batch into a name -> position table.

- Positions are 1-based; blank cells are skipped but still consume a position
- Repeated names register as "name#position" so the first occurrence wins
- All missing required names are reported together
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from ..errors import ConfigurationError
from ..logger import get_logger
from ..models.scoring_config import ScoringConfig

logger = get_logger(__name__)

DUPLICATE_SEPARATOR = "#"


class FieldMap(BaseModel):
    """Resolved header positions for one batch"""
    model_config = ConfigDict(frozen=True)

    positions: Dict[str, int] = Field(default_factory=dict)
    width: int = 0

    def lookup(self, base_name: str) -> int:
        """
        Position of a column, or 0 when it cannot be found.

        Tries the exact name first, then the first disambiguated
        "base_name#N" entry.
        """
        if base_name in self.positions:
            return self.positions[base_name]

        prefix = f"{base_name}{DUPLICATE_SEPARATOR}"
        for key, position in self.positions.items():
            if key.startswith(prefix):
                return position
        return 0

    def value(self, record: Sequence[Any], base_name: str, default: Any = "") -> Any:
        """Cell value for a column; blank when unmapped or past the row end"""
        position = self.lookup(base_name)
        if position <= 0 or position > len(record):
            return default
        cell = record[position - 1]
        return default if cell is None else cell

    def __contains__(self, base_name: str) -> bool:
        return self.lookup(base_name) != 0


def _clean_header_cell(cell: Any) -> str:
    if cell is None:
        return ""
    return str(cell).strip()


def resolve_field_map(
    header_row: Sequence[Any],
    required_fields: Optional[Iterable[str]] = None,
) -> FieldMap:
    """
    Build a FieldMap from a header row.

    Args:
        header_row: Ordered header cells
        required_fields: Header names that must resolve

    Returns:
        FieldMap

    Raises:
        ConfigurationError: listing every required name that did not resolve
    """
    positions: Dict[str, int] = {}

    for position, cell in enumerate(header_row, start=1):
        name = _clean_header_cell(cell)
        if not name:
            continue
        if name in positions:
            positions[f"{name}{DUPLICATE_SEPARATOR}{position}"] = position
        else:
            positions[name] = position

    field_map = FieldMap(positions=positions, width=len(header_row))

    missing: List[str] = []
    for name in required_fields or []:
        if name not in missing and field_map.lookup(name) == 0:
            missing.append(name)

    if missing:
        raise ConfigurationError(missing)

    return field_map


class FieldMapStage:
    """
    Stage 1: Resolve the header row against the configured field names.
    """

    def __init__(self, config: ScoringConfig):
        self.config = config
        self.required = config.required_header_names()

    def process(self, header_row: Sequence[Any]) -> FieldMap:
        try:
            field_map = resolve_field_map(header_row, self.required)
        except ConfigurationError as e:
            logger.error(
                "Header row is missing required columns",
                missing_fields=e.missing_fields,
            )
            raise

        duplicates = [k for k in field_map.positions if DUPLICATE_SEPARATOR in k]
        if duplicates:
            logger.info("Disambiguated duplicate columns", field_names=duplicates)
        return field_map
