from hostelpulse.modules.enrichment.job import (
    EnrichmentJob,
    EnrichmentResult,
    EnrichmentTarget,
    find_candidates,
)

__all__ = ["EnrichmentJob", "EnrichmentResult", "EnrichmentTarget", "find_candidates"]
