from .engine import rank_jobs, score_job
from .types import Enrichment, ScoreBreakdown, ScoredJob

__all__ = ["rank_jobs", "score_job", "Enrichment", "ScoreBreakdown", "ScoredJob"]
