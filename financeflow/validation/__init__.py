"""Validation package."""

from financeflow.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
