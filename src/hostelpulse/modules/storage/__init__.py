from hostelpulse.modules.storage.store import NullStore, WeeklyReportStore

__all__ = ["NullStore", "WeeklyReportStore"]
