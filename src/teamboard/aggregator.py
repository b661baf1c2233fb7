from typing import Iterable

from teamboard.models import USER_ACTOR, Aggregate, UsageRecord

UNKNOWN_IDENTITY = "unknown"


def identity_for(record: "UsageRecord") -> "str":
    """
    resolves the identity a record is attributed to: the email
    address for users, the key name for API keys.
    """
    if record.actor_type == USER_ACTOR and record.email_address:
        return record.email_address
    return record.api_key_name or UNKNOWN_IDENTITY


def aggregate_by_identity(
    records: "Iterable[UsageRecord]",
) -> "dict[str, Aggregate]":
    """
    folds records into per-identity totals. Keys keep the order in
    which identities first appear.

    Records are not deduplicated: feeding the same record twice counts
    it twice.
    """
    totals: "dict[str, Aggregate]" = {}
    for record in records:
        key = identity_for(record)
        agg = totals.get(key)
        if agg is None:
            agg = totals[key] = Aggregate()
        agg.add(record)
    return totals
