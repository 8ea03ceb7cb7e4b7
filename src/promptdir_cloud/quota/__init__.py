"""Daily generation quota: the usage ledger and the atomic quota gate."""

from promptdir_cloud.quota.gate import QuotaGate, next_reset, utc_day, utc_day_start
from promptdir_cloud.quota.ledger import UsageLedger

__all__ = ["QuotaGate", "UsageLedger", "next_reset", "utc_day", "utc_day_start"]
