from hostelpulse.modules.batch.orchestrator import BatchFetchOrchestrator, BatchFetchResult

__all__ = ["BatchFetchOrchestrator", "BatchFetchResult"]
