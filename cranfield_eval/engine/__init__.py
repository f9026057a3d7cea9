"""Ranking engine contract and adapters."""
from cranfield_eval.engine.base import RankingEngine
from cranfield_eval.engine.http_engine import HttpRankingEngine
from cranfield_eval.engine.run_file_engine import RunFileRankingEngine

__all__ = [
    "RankingEngine",
    "HttpRankingEngine",
    "RunFileRankingEngine",
]
