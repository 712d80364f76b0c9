"""
Form Input Validation

DESIGN DECISION: Input is validated before any backend call.
A form that fails validation never reaches the store's write path,
so a typo can't leave half-written state anywhere.

Amounts arrive as text because users type grouped Indonesian numbers
("1.500.000", "Rp 25.000", "12,5"). parse_amount() is the only place
that turns that text into a Decimal.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the form can show them inline.
"""

import re
from collections.abc import Collection
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from duwit.config import AppSettings, get_settings
from duwit.models.finance import (
    EXPENSE_CATEGORIES,
    AccountForm,
    Category,
    TransactionForm,
    ValidationIssue,
    ValidationResult,
    categories_for,
)


_CURRENCY_PREFIX = re.compile(r"^(rp\.?|idr)\s*", re.IGNORECASE)
_PLAIN_NUMBER = re.compile(r"^\d+(\.\d+)?$")
_GROUPED_THOUSANDS = re.compile(r"^\d{1,3}(\.\d{3})+$")


class InvalidAmountError(ValueError):
    """Text could not be read as an amount."""

    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Not a valid amount: {text!r}")


def _normalise_number(body: str) -> str:
    """Rewrite id-ID formatted digits to a plain Decimal literal."""
    if "." in body and "," in body:
        # 1.250.000,50
        return body.replace(".", "").replace(",", ".")
    if "," in body:
        if body.count(",") > 1:
            return body.replace(",", "")
        return body.replace(",", ".")
    if _GROUPED_THOUSANDS.match(body):
        return body.replace(".", "")
    return body


def parse_amount(text: str, allow_negative: bool = False) -> Decimal:
    """
    Parse user-typed amount text.

    Args:
        text: Raw input, e.g. "1.500.000", "Rp 25.000", "12,5"
        allow_negative: Accept a leading minus (initial balances)

    Returns:
        The amount as a Decimal

    Raises:
        InvalidAmountError: If the text isn't a number
    """
    if text is None:
        raise InvalidAmountError("")

    body = _CURRENCY_PREFIX.sub("", text.strip()).replace(" ", "")
    negative = body.startswith("-")
    if negative:
        if not allow_negative:
            raise InvalidAmountError(text)
        body = body[1:]

    body = _normalise_number(body)
    if not _PLAIN_NUMBER.match(body):
        raise InvalidAmountError(text)

    try:
        value = Decimal(body)
    except InvalidOperation:
        raise InvalidAmountError(text)
    return -value if negative else value


class InputValidator:
    """
    Validates raw form input for transactions, wallets and budgets.

    Errors block the submission; warnings are shown but don't block.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def validate_transaction(
        self,
        form: TransactionForm,
        account_ids: Collection[str],
    ) -> ValidationResult:
        """
        Validate a transaction form.

        Checks:
        - A known account is selected
        - Amount is numeric and greater than zero
        - Category belongs to the income/expense subset
        - Date isn't unreasonably far in the future (warning)
        """
        issues = []

        if not form.account_id:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="missing",
                message="Please choose which wallet this belongs to",
                suggested_fix="Add a wallet first if you have none",
            ))
        elif form.account_id not in account_ids:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="unknown_reference",
                message="The selected wallet no longer exists",
            ))

        issues.extend(self._amount_issues(form.amount_text, field="amount_text"))

        if form.category not in categories_for(form.type):
            issues.append(ValidationIssue(
                field="category",
                issue_type="invalid_value",
                message=f"{form.category.value} is not a {form.type.value} category",
                suggested_fix="Pick a category from the list",
            ))

        if form.occurred_on is not None:
            tolerance = timedelta(days=self._settings.future_date_tolerance_days)
            if form.occurred_on > date.today() + tolerance:
                issues.append(ValidationIssue(
                    field="occurred_on",
                    issue_type="future_date",
                    message=f"Date ({form.occurred_on}) is in the future",
                    severity="warning",
                    suggested_fix="Please verify the date is correct",
                ))

        return ValidationResult(issues=issues)

    def validate_account(self, form: AccountForm) -> ValidationResult:
        """
        Validate a wallet form.

        The initial balance may be zero or negative, but must be a number.
        A blank balance is treated as zero.
        """
        issues = []

        if not form.name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Wallet name is required",
                suggested_fix="e.g. BCA, Gopay, Dompet",
            ))
        elif len(form.name) > 100:
            issues.append(ValidationIssue(
                field="name",
                issue_type="too_long",
                message="Wallet name must be at most 100 characters",
            ))

        if form.initial_balance_text:
            try:
                parse_amount(form.initial_balance_text, allow_negative=True)
            except InvalidAmountError:
                issues.append(ValidationIssue(
                    field="initial_balance_text",
                    issue_type="invalid_format",
                    message="Initial balance must be a number",
                ))

        return ValidationResult(issues=issues)

    def validate_budget(self, category: Category, limit_text: str) -> ValidationResult:
        """Validate a budget limit. Blank means 'no budget' (0)."""
        issues = []

        if category not in EXPENSE_CATEGORIES:
            issues.append(ValidationIssue(
                field="category",
                issue_type="invalid_value",
                message=f"Budgets can only be set on expense categories, not {category.value}",
            ))

        if limit_text and limit_text.strip():
            try:
                parse_amount(limit_text)
            except InvalidAmountError:
                issues.append(ValidationIssue(
                    field="limit_text",
                    issue_type="invalid_format",
                    message="Budget limit must be a number (0 or more)",
                ))

        return ValidationResult(issues=issues)

    def _amount_issues(self, text: str, field: str) -> list[ValidationIssue]:
        if not text:
            return [ValidationIssue(
                field=field,
                issue_type="missing",
                message="Amount is required",
            )]
        try:
            amount = parse_amount(text)
        except InvalidAmountError:
            return [ValidationIssue(
                field=field,
                issue_type="invalid_format",
                message="Amount must be a number",
                suggested_fix="Type digits only, e.g. 25.000",
            )]
        if amount <= 0:
            return [ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message="Amount must be greater than zero",
            )]
        return []
