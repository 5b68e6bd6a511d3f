"""
510(k) Clearance Scoring Engine
===============================
A staged pipeline that prioritizes FDA 510(k) clearance records:
  Stage 1: Field Map (header resolution)
  Stage 2: Weighted Scoring (six-component model)
  Stage 3: Recap Cache (in-memory + persistent)
  Stage 4: LLM Enrichment (company recaps on cache misses)
"""

__version__ = "1.0.0"
__author__ = "Clearance Scoring Team"
