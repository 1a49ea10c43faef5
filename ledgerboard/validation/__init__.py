"""Validation package: lenient normalization on read, strict checks on write."""

from ledgerboard.validation.normalizer import (
    TransactionNormalizer,
    parse_amount,
    parse_category,
    parse_date,
    parse_timestamp,
)
from ledgerboard.validation.validator import TransactionValidator

__all__ = [
    "TransactionNormalizer",
    "TransactionValidator",
    "parse_amount",
    "parse_category",
    "parse_date",
    "parse_timestamp",
]
