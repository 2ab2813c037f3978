from .stats import DEFAULT_RATING, ProfileService, ProfileStats, outcome_for, quick_start_options

__all__ = [
    "DEFAULT_RATING",
    "ProfileService",
    "ProfileStats",
    "outcome_for",
    "quick_start_options",
]
