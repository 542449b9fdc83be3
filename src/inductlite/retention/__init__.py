"""Data retention: periodic purge of expired records and artifacts."""

from .schemas import RetentionStatistics
from .service import RetentionReaper, sign_in_cutoff

__all__ = ["RetentionStatistics", "RetentionReaper", "sign_in_cutoff"]
