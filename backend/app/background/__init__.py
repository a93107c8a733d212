from .enrichment import EnrichmentWorkerPool, PoolState
from .optimization import TagOptimizationScheduler

__all__ = [
    "EnrichmentWorkerPool",
    "PoolState",
    "TagOptimizationScheduler",
]
