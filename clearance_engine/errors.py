"""
Exception hierarchy for the Clearance Scoring Engine
"""

from typing import Iterable, List, Optional


class ClearanceEngineError(Exception):
    """Base class for all engine errors"""


class ConfigurationError(ClearanceEngineError):
    """Required fields are missing from the header row. Fatal to the batch."""

    def __init__(self, missing_fields: Iterable[str]):
        self.missing_fields: List[str] = list(missing_fields)
        super().__init__(
            f"Missing required columns: {', '.join(self.missing_fields)}"
        )


class RecordError(ClearanceEngineError):
    """A single record could not be scored"""

    def __init__(
        self,
        message: str,
        record_id: Optional[str] = None,
        field_name: Optional[str] = None,
    ):
        self.record_id = record_id
        self.field_name = field_name
        super().__init__(message)


# =============================================================================
# Enrichment errors (never escape the recap cache)
# =============================================================================

class EnrichmentError(ClearanceEngineError):
    """Any failure of the external enrichment call"""


class EnrichmentDisabledError(EnrichmentError):
    """Enrichment is switched off in configuration"""


class MissingCredentialError(EnrichmentError):
    """No API key available for the LLM provider"""


class EnrichmentTimeoutError(EnrichmentError):
    """The LLM call exceeded its timeout or the connection failed"""


class EnrichmentStatusError(EnrichmentError):
    """The LLM provider answered with a non-success status"""


class EnrichmentQuotaError(EnrichmentError):
    """The LLM provider rejected the call for rate/quota reasons"""


class EnrichmentResponseError(EnrichmentError):
    """The LLM answer was empty, an error indicator, or too long"""


# =============================================================================
# Persistent cache errors
# =============================================================================

class CacheIOError(ClearanceEngineError):
    """Reading or writing the persistent recap store failed"""
