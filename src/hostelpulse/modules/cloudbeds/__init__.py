from hostelpulse.modules.cloudbeds.client import CloudbedsClient, format_api_datetime

__all__ = ["CloudbedsClient", "format_api_datetime"]
