from hostelpulse.modules.summary.summarizer import NarrativeSummarizer, SummaryResult

__all__ = ["NarrativeSummarizer", "SummaryResult"]
