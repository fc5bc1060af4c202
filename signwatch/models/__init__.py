from signwatch.models.quota_usage import QuotaUsageRecord
from signwatch.models.request_log import RequestLog
from signwatch.models.snapshot import SnapshotRecord

__all__ = [
    "QuotaUsageRecord",
    "RequestLog",
    "SnapshotRecord",
]
