# Pipeline stages
from .stage1_field_map import FieldMap, FieldMapStage, resolve_field_map
from .stage2_scoring import WeightedScoringStage
from .stage3_recap_cache import RecapCache
from .stage4_enrichment import RecapEnricher
