"""
Tax identifier validation.
Format and pattern checks for jurisdiction-issued taxpayer numbers.

Only local checks happen here. Verifying that an identifier is actually
registered with the tax authority is out of scope; plug a stricter
check-digit strategy into IdentifierConfig when one becomes available.
"""
import re
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from findoc_engine.core.models import (
    IdentifierCategory,
    IdentifierError,
    TaxIdentifierResult,
)

CheckDigitStrategy = Callable[[str], bool]

# str.isdigit() and \d also accept superscripts and non-Latin digits
_ASCII_DIGITS = re.compile(r'[0-9]+')


def _is_ascii_digits(value: str) -> bool:
    return _ASCII_DIGITS.fullmatch(value) is not None


def accept_all(digits: str) -> bool:
    """Placeholder strategy: no check digit is defined for the jurisdiction"""
    return True


MOD11_WEIGHTS = (2, 3, 4, 5, 6, 7, 8, 9, 2)


def weighted_mod11(digits: str) -> bool:
    """
    Weighted mod-11 check: the last digit checks the preceding ones.

    Weights cycle 2..9 over the leading digits; a remainder below 2 is used
    as-is, otherwise the check digit is 11 - remainder.
    """
    if len(digits) < 2 or not _is_ascii_digits(digits):
        return False
    body = digits[:-1]
    total = 0
    for idx, ch in enumerate(body):
        total += int(ch) * MOD11_WEIGHTS[idx % len(MOD11_WEIGHTS)]
    remainder = total % 11
    expected = remainder if remainder < 2 else 11 - remainder
    return expected == int(digits[-1])


CHECK_DIGIT_STRATEGIES = {
    'none': accept_all,
    'mod11': weighted_mod11,
}


class IdentifierConfig(BaseModel):
    """Jurisdiction settings for identifier validation"""
    model_config = ConfigDict(frozen=True)

    length: int = Field(default=10, ge=1)
    allow_hyphens: bool = False
    check_digit: CheckDigitStrategy = accept_all


DEFAULT_CONFIG = IdentifierConfig()

_WHITESPACE = re.compile(r'\s+')


def clean_tax_identifier(raw: Optional[str], allow_hyphens: bool = False) -> str:
    """Strip whitespace (and hyphens when allowed) from a raw identifier"""
    if not raw:
        return ''
    cleaned = _WHITESPACE.sub('', raw)
    if allow_hyphens:
        cleaned = cleaned.replace('-', '')
    return cleaned.upper()


def _is_step_sequence(digits: str) -> bool:
    # steps wrap around 9 -> 0, so 1234567890 counts as ascending
    values = [int(ch) for ch in digits]
    ascending = all(b == (a + 1) % 10 for a, b in zip(values, values[1:]))
    descending = all(b == (a - 1) % 10 for a, b in zip(values, values[1:]))
    return ascending or descending


class TaxIdentifierValidator:
    """
    Validator for tax identifiers.
    Rules run in order and stop at the first failure.
    """

    def __init__(self, config: Optional[IdentifierConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.pattern = re.compile(r'^[0-9]{%d}$' % self.config.length)

    def validate(self, raw: Optional[str]) -> TaxIdentifierResult:
        """
        Validate a raw identifier string.

        Empty input is valid and absent: the identifier is optional.

        Args:
            raw: Identifier as typed or stored

        Returns:
            TaxIdentifierResult
        """
        cleaned = clean_tax_identifier(raw, self.config.allow_hyphens)
        if not cleaned:
            return TaxIdentifierResult(is_valid=True)

        error = self._first_error(cleaned)
        if error is not None:
            return TaxIdentifierResult(is_valid=False, cleaned=cleaned, errors=[error])

        return TaxIdentifierResult(is_valid=True, cleaned=cleaned)

    def _first_error(self, cleaned: str) -> Optional[IdentifierError]:
        if not self.pattern.match(cleaned):
            return IdentifierError(
                code='format',
                message=f'Identifier must be exactly {self.config.length} digits',
            )

        if len(set(cleaned)) == 1:
            return IdentifierError(
                code='all-same-digit',
                message='Identifier cannot be all the same digit',
            )

        if _is_step_sequence(cleaned):
            return IdentifierError(
                code='sequential',
                message='Identifier cannot be a sequential number',
            )

        if not self.config.check_digit(cleaned):
            return IdentifierError(
                code='check-digit',
                message='Identifier check digit does not match',
            )

        return None


def validate_tax_identifier(raw: Optional[str],
                            config: Optional[IdentifierConfig] = None) -> TaxIdentifierResult:
    """Validate a raw identifier with the given (or default) configuration"""
    return TaxIdentifierValidator(config).validate(raw)


def classify_tax_identifier(raw: Optional[str], length: int = 10) -> IdentifierCategory:
    """
    HEURISTIC guess at the taxpayer type from the leading digit.

    1-5 is treated as an individual and 6-9 as a company. This rule is not
    published by any tax authority; never use it to decide tax treatment.
    """
    cleaned = clean_tax_identifier(raw)
    if len(cleaned) != length or not _is_ascii_digits(cleaned):
        return IdentifierCategory.UNKNOWN

    first = int(cleaned[0])
    if 1 <= first <= 5:
        return IdentifierCategory.INDIVIDUAL
    if 6 <= first <= 9:
        return IdentifierCategory.COMPANY
    return IdentifierCategory.UNKNOWN


def format_tax_identifier(raw: Optional[str]) -> str:
    """Group a 10-digit identifier as XXXX XXX XXX for display"""
    cleaned = clean_tax_identifier(raw)
    if len(cleaned) == 10:
        return f'{cleaned[:4]} {cleaned[4:7]} {cleaned[7:]}'
    return cleaned


def mask_tax_identifier(raw: Optional[str]) -> str:
    """Hide all but the first and last two characters"""
    cleaned = clean_tax_identifier(raw)
    if len(cleaned) < 4:
        return '****'
    return f'{cleaned[:2]}****{cleaned[-2:]}'
