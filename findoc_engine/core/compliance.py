"""
Customer tax compliance scoring.
Deductions are independent and summed, then clamped to 0-100.
"""
from datetime import date, datetime
from typing import List, Optional

from dateutil.relativedelta import relativedelta

from findoc_engine.core.models import (
    ComplianceIssue,
    CompliancePolicy,
    ComplianceReport,
    IssueKind,
    Severity,
    TaxIdentifierResult,
    TaxProfile,
)

DEFAULT_POLICY = CompliancePolicy()

MAX_SCORE = 100


def _evaluation_date(now: datetime) -> date:
    return now.date() if isinstance(now, datetime) else now


def _identifier_unvalidated(profile: TaxProfile,
                            identifier_result: Optional[TaxIdentifierResult]) -> bool:
    if not profile.has_identifier:
        return False
    if not profile.identifier_validated:
        return True
    return identifier_result is not None and not identifier_result.is_valid


def _exemption_expired(profile: TaxProfile, today: date) -> bool:
    if not profile.exemption or profile.exemption_valid_until is None:
        return False
    return profile.exemption_valid_until < today


def score_tax_compliance(profile: Optional[TaxProfile],
                         identifier_result: Optional[TaxIdentifierResult],
                         now: datetime,
                         policy: Optional[CompliancePolicy] = None) -> ComplianceReport:
    """
    Score a customer's tax documentation.

    Args:
        profile: Stored tax profile, or None when the customer has none
        identifier_result: Validator output for the profile's identifier
        now: Evaluation time (exemptions expire when their date is before it)
        policy: Deduction weights; defaults to the standard weights

    Returns:
        ComplianceReport with issues in deduction order
    """
    policy = policy or DEFAULT_POLICY
    issues: List[ComplianceIssue] = []
    score = MAX_SCORE

    if profile is None:
        issues.append(ComplianceIssue(
            kind=IssueKind.DOCUMENTATION_MISSING,
            severity=Severity.HIGH,
            description='Customer tax profile not found',
            recommendation='Create a customer tax profile with identifier and registration details',
        ))
        score -= policy.missing_profile_penalty
    else:
        if _identifier_unvalidated(profile, identifier_result):
            issues.append(ComplianceIssue(
                kind=IssueKind.IDENTIFIER_INVALID,
                severity=Severity.HIGH,
                description='Tax identifier has not been validated',
                recommendation='Validate the tax identifier before issuing further invoices',
            ))
            score -= policy.unvalidated_identifier_penalty

        if profile.tax_registered and not (profile.tax_registration_number or '').strip():
            issues.append(ComplianceIssue(
                kind=IssueKind.REGISTRATION_MISMATCH,
                severity=Severity.MEDIUM,
                description='Registered for tax but no registration number provided',
                recommendation='Provide the tax registration number',
            ))
            score -= policy.registration_mismatch_penalty

        if _exemption_expired(profile, _evaluation_date(now)):
            issues.append(ComplianceIssue(
                kind=IssueKind.EXEMPTION_EXPIRED,
                severity=Severity.CRITICAL,
                description=f'Tax exemption expired on {profile.exemption_valid_until.isoformat()}',
                recommendation='Renew the exemption certificate or remove the exemption status',
            ))
            score -= policy.expired_exemption_penalty

    return ComplianceReport(
        score=max(0, min(MAX_SCORE, score)),
        issues=issues,
        checked_at=now,
        next_check_due=now + relativedelta(days=+policy.check_interval_days),
    )
