"""ClaimCraft Engine - Document Recommender

This layer takes a ClaimState and decides which document comes next.
"""
from .selector import (
    Alternative,
    ClaimStage,
    DocumentRecommender,
    Recommendation,
    recommend_document,
)

__all__ = ["Alternative", "ClaimStage", "DocumentRecommender", "Recommendation", "recommend_document"]
