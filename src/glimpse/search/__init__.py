"""Glimpse search: keyword overlap ranking and semantic similarity ranking."""

from glimpse.search.keyword import KeywordHit, KeywordSearchRanker
from glimpse.search.semantic import SemanticHit, SemanticSearchRanker

__all__ = ["KeywordHit", "KeywordSearchRanker", "SemanticHit", "SemanticSearchRanker"]
