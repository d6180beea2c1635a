"""Services package for grab: scheduling, aggregation and search orchestration."""

from services.aggregator import ResultAggregator
from services.scheduler import TaskScheduler
from services.search_engine import SearchEngine, run_search

__all__ = [
    "ResultAggregator",
    "TaskScheduler",
    "SearchEngine",
    "run_search",
]
