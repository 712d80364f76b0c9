"""Input validation package."""

from duwit.validation.validator import InputValidator, InvalidAmountError, parse_amount

__all__ = ["InputValidator", "InvalidAmountError", "parse_amount"]
