"""Leaf helpers shared by every extractor."""

from consig_recon.utils.parsing import (
    AmountCandidate,
    choose_amount,
    find_amount_candidates,
    format_amount,
    parse_amount,
    to_money,
)
from consig_recon.utils.patterns import (
    find_employee_key,
    find_event_code,
    find_period,
    find_tax_id,
    key_sort_value,
)

__all__ = [
    "AmountCandidate",
    "choose_amount",
    "find_amount_candidates",
    "find_employee_key",
    "find_event_code",
    "find_period",
    "find_tax_id",
    "format_amount",
    "key_sort_value",
    "parse_amount",
    "to_money",
]
