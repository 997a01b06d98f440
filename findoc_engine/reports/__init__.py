"""Financial Document Engine - Reports Package"""

from findoc_engine.reports.generator import (
    generate_aging_report,
    generate_batch_report,
    generate_compliance_report,
    generate_identifier_report,
    generate_totals_report,
)

__all__ = [
    'generate_aging_report',
    'generate_batch_report',
    'generate_compliance_report',
    'generate_identifier_report',
    'generate_totals_report',
]
