"""
Review helpers: confidence filtering and render hints.
"""

from takeoff_editor.review.confidence import ConfidenceFilter, confidence_level, needs_review

__all__ = ["ConfidenceFilter", "confidence_level", "needs_review"]
