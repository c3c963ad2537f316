from .common import EarningsMetric, FeedVariant, FiscalPeriod, IdentityKey

__all__ = [
    "EarningsMetric",
    "FeedVariant",
    "FiscalPeriod",
    "IdentityKey",
]
