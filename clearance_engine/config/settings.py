"""
Configuration settings for the Clearance Scoring Engine
"""

import os

# =============================================================================
# LLM CONFIGURATION (OpenRouter)
# =============================================================================

LLM_CONFIG = {
    "provider": os.getenv("LLM_PROVIDER", "openrouter"),  # openrouter, openai
    "model": os.getenv("LLM_MODEL", "openai/gpt-4o-mini"),  # OpenRouter model format
    "api_key": os.getenv("OPENROUTER_API_KEY", ""),
    "base_url": os.getenv("LLM_BASE_URL", "https://openrouter.ai/api/v1"),
    "max_tokens": 300,
    "temperature": 0.2,
    "timeout_seconds": float(os.getenv("LLM_TIMEOUT_SECONDS", "60")),
    "enabled": os.getenv("ENRICHMENT_ENABLED", "false").lower() in ("1", "true", "yes"),
    # OpenRouter specific headers
    "site_url": os.getenv("OPENROUTER_SITE_URL", "http://localhost:8000"),
    "app_name": os.getenv("OPENROUTER_APP_NAME", "510k Clearance Scoring Engine"),
}

# =============================================================================
# RECAP CACHE
# =============================================================================

CACHE_CONFIG = {
    "path": os.getenv("RECAP_CACHE_PATH", "data/company_recap_cache.csv"),
    "default_recap": "No company recap available",
    "empty_name_recap": "Company name not provided",
    "max_recap_chars": 500,
    # Raw responses above this size are treated as malformed
    "max_response_chars": 4000,
}

CACHE_COLUMNS = ["CompanyName", "RecapText", "LastUpdated"]

# =============================================================================
# LOGGING
# =============================================================================

LOG_CONFIG = {
    "level": os.getenv("LOG_LEVEL", "INFO"),
    "log_dir": os.getenv("LOG_DIR", "logs"),
    "enable_file": os.getenv("LOG_TO_FILE", "false").lower() in ("1", "true", "yes"),
}

# =============================================================================
# FIELD NAMES (logical field -> header name)
# =============================================================================

FIELD_NAMES = {
    "record_id": "K_Number",
    "advisory_committee": "AC",
    "product_code": "PC",
    "device_name": "DeviceName",
    "statement": "Statement",
    "submission_type": "SubmType",
    "country": "Country",
    "processing_time_days": "ProcTimeDays",
    "company_name": "Applicant",
}

REQUIRED_FIELDS = [
    "advisory_committee",
    "product_code",
    "device_name",
    "statement",
    "submission_type",
    "country",
    "processing_time_days",
]

# =============================================================================
# DEFAULT WEIGHT TABLES
# =============================================================================

DEFAULT_WEIGHT_TABLES = {
    "advisory_committee": {
        "default": 0.50,
        "weights": {
            "OR": 0.70,  # Orthopedic
            "NE": 0.70,  # Neurology
            "CV": 0.65,  # Cardiovascular
            "RA": 0.60,  # Radiology
            "DE": 0.55,  # Dental
            "GU": 0.55,  # Gastroenterology/Urology
            "SU": 0.55,  # General & Plastic Surgery
            "AN": 0.50,  # Anesthesiology
            "HO": 0.45,  # General Hospital
            "CH": 0.40,  # Clinical Chemistry
        },
    },
    "product_code": {
        "default": 0.50,
        "weights": {
            "QAS": 0.70,  # Radiological computer-assisted triage
            "QIH": 0.70,  # Automated radiological image processing
            "LLZ": 0.65,  # Radiological image processing system
            "OLO": 0.65,  # Orthopedic stereotaxic instrument
            "GZB": 0.60,  # Stimulator, spinal-cord, implanted
        },
    },
    "submission_type": {
        "default": 0.50,
        "weights": {
            "Traditional": 0.55,
            "Special": 0.50,
            "Abbreviated": 0.45,
            "De Novo": 0.65,
        },
    },
}

# =============================================================================
# KEYWORD SETS
# =============================================================================

DEFAULT_KEYWORDS = {
    "high_value": [
        "artificial intelligence",
        "machine learning",
        "deep learning",
        "algorithm",
        "robotic",
        "navigation",
        "sensor",
        "wireless",
        "neurostimulat",
        "closed-loop",
        "software",
    ],
    "cosmetic": [
        "cosmetic",
        "aesthetic",
        "wrinkle",
        "hair removal",
        "tattoo",
        "skin rejuvenation",
    ],
    "diagnostic": [
        "diagnostic",
        "assay",
        "test kit",
        "in vitro",
        "specimen",
        "reagent",
    ],
    "therapeutic": [
        "therapeutic",
        "therapy",
        "treatment",
        "implant",
        "stimulat",
        "ablation",
    ],
}

# =============================================================================
# SCORING CONSTANTS
# =============================================================================

SCORING_CONSTANTS = {
    # Processing time bands (days)
    "pt_upper_threshold": 172,
    "pt_lower_threshold": 162,
    "pt_weight_long": 0.65,
    "pt_weight_band": 0.60,
    "pt_weight_default": 0.50,
    # Geography
    "domestic_country": "US",
    "gl_weight_domestic": 0.60,
    "gl_weight_foreign": 0.50,
    # Keywords
    "kw_weight_match": 0.85,
    "kw_weight_no_match": 0.20,
    # Negative factors
    "nf_cosmetic": -2.0,
    "nf_diagnostic": -0.2,
    # Synergy
    "synergy_committees": ["OR", "NE"],
    "synergy_bonus": 0.15,
    # Number of components the sum is averaged over
    "component_count": 6,
}

# =============================================================================
# CATEGORY THRESHOLDS
# =============================================================================

CATEGORY_THRESHOLDS = {
    "high": 0.6,      # strictly above
    "moderate": 0.5,  # at or above
    "low": 0.4,       # at or above
}

# =============================================================================
# OUTPUT
# =============================================================================

OUTPUT_COLUMNS = [
    "AC_Wt",
    "PC_Wt",
    "KW_Wt",
    "ST_Wt",
    "PT_Wt",
    "GL_Wt",
    "NF_Calc",
    "Synergy_Calc",
    "Final_Score",
    "Score_Percent",
    "Category",
    "CompanyRecap",
]


def enrichment_allowed() -> bool:
    """Default enrichment gate: feature flag on and a credential present"""
    api_key = os.getenv("OPENROUTER_API_KEY", "") or LLM_CONFIG["api_key"]
    return bool(LLM_CONFIG["enabled"] and api_key)
