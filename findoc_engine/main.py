"""
Financial Document Engine - Main Entry Point
Command-line interface for invoice totals, identifier checks, compliance
scoring and receivables aging.
"""
import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from dateutil.parser import parse as parse_date

from findoc_engine.core.engine import FinancialEngine
from findoc_engine.core.models import EngineValidationError
from findoc_engine.core.parsers import (
    ParserError,
    load_invoice_document,
    load_receivables,
    load_tax_profile,
)
from findoc_engine.processing.batch import BatchProcessor
from findoc_engine.processing.concurrent import ConcurrentProcessor
from findoc_engine.reports.generator import (
    generate_aging_report,
    generate_batch_report,
    generate_compliance_report,
    generate_identifier_report,
    generate_totals_report,
)
from findoc_engine.utils.config import Config


def setup_logging(verbose: bool = False, level: str = 'INFO', log_file: Optional[str] = None):
    """Configure application logging"""
    if verbose:
        level_num = logging.DEBUG
    else:
        level_num = getattr(logging, level.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level_num,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


def _as_of(value: Optional[str]) -> datetime:
    return parse_date(value) if value else datetime.now()


def _print_errors(error: EngineValidationError):
    print(f"\nRejected: {len(error.errors)} problem(s)\n")
    for i, field_error in enumerate(error.errors, 1):
        print(f"{i}. {field_error.field}: {field_error.message}")


def compute_totals(args, engine: FinancialEngine) -> int:
    """Handle invoice totals command"""
    document = load_invoice_document(Path(args.file))
    logging.info(f"Computing totals: {document.invoice_number}")

    try:
        totals = engine.compute_document(document)
    except EngineValidationError as e:
        _print_errors(e)
        return 1

    if args.json:
        print(totals.model_dump_json(indent=2))
    else:
        print(generate_totals_report(totals, document.invoice_number))
    return 0


def check_identifiers(args, engine: FinancialEngine) -> int:
    """Handle identifier validation command"""
    all_valid = True
    for raw in args.identifiers:
        result = engine.validate_identifier(raw)
        all_valid = all_valid and result.is_valid
        print(generate_identifier_report(raw, result, reveal=args.reveal))
    return 0 if all_valid else 1


def check_compliance(args, engine: FinancialEngine) -> int:
    """Handle compliance scoring command"""
    profile = load_tax_profile(Path(args.file))
    report = engine.check_compliance(profile, now=_as_of(args.as_of), reference=args.file)

    if args.json:
        print(report.model_dump_json(indent=2))
    else:
        print(generate_compliance_report(report, customer=Path(args.file).stem))
    return 0 if report.is_compliant else 1


def age_receivables(args, engine: FinancialEngine) -> int:
    """Handle receivables aging command"""
    invoices = load_receivables(Path(args.file))

    try:
        analysis = engine.age_receivables(invoices, as_of=_as_of(args.as_of).date(), reference=args.file)
    except EngineValidationError as e:
        _print_errors(e)
        return 1

    if args.json:
        print(analysis.model_dump_json(indent=2))
    else:
        print(generate_aging_report(analysis))
    return 0


def process_directory(args, engine: FinancialEngine) -> int:
    """Handle batch directory command"""
    input_dir = Path(args.input)
    output_dir = Path(args.output) if args.output else None

    if not input_dir.exists():
        logging.error(f"Input directory not found: {input_dir}")
        return 1

    logging.info(f"Starting batch: {input_dir}")
    logging.info(f"Pattern: {args.pattern}")
    logging.info(f"Mode: {'concurrent' if args.concurrent else 'sequential'}")

    if args.concurrent:
        processor = ConcurrentProcessor(max_workers=args.workers, engine=engine)
        result = processor.process_directory(input_dir, pattern=args.pattern, output_dir=output_dir)
    else:
        processor = BatchProcessor(engine=engine)
        result = processor.process_directory(input_dir, pattern=args.pattern, output_dir=output_dir)

    print(generate_batch_report(result))

    # Return exit code (0 if every document computed, 1 otherwise)
    return 0 if result.failed_count == 0 else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='findoc-engine',
        description='Financial document engine - invoice totals, tax identifiers, '
                    'compliance scores and receivables aging'
    )
    parser.add_argument('--env-file', help='Load FINDOC_* settings from a .env file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    totals_parser = subparsers.add_parser('totals', help='Compute totals for an invoice document')
    totals_parser.add_argument('file', help='Path to JSON invoice document')
    totals_parser.add_argument('--json', action='store_true', help='Print JSON instead of text')

    tin_parser = subparsers.add_parser('tin', help='Validate tax identifiers')
    tin_parser.add_argument('identifiers', nargs='+', help='Identifiers to validate')
    tin_parser.add_argument('--reveal', action='store_true', help='Print identifiers unmasked')

    compliance_parser = subparsers.add_parser('compliance', help='Score a customer tax profile')
    compliance_parser.add_argument('file', help='Path to JSON tax profile')
    compliance_parser.add_argument('--as-of', help='Evaluation time (default: now)')
    compliance_parser.add_argument('--json', action='store_true', help='Print JSON instead of text')

    aging_parser = subparsers.add_parser('aging', help='Age outstanding receivables')
    aging_parser.add_argument('file', help='Path to JSON list of outstanding invoices')
    aging_parser.add_argument('--as-of', help='Evaluation date (default: today)')
    aging_parser.add_argument('--json', action='store_true', help='Print JSON instead of text')

    batch_parser = subparsers.add_parser('batch', help='Compute totals for a directory of invoices')
    batch_parser.add_argument('input', help='Input directory path')
    batch_parser.add_argument('--output', '-o', help='Output directory for per-invoice results')
    batch_parser.add_argument('--pattern', '-p', default='*.json', help='File pattern (default: *.json)')
    batch_parser.add_argument('--workers', '-w', type=int, default=None, help='Number of worker threads')
    batch_parser.add_argument('--concurrent', '-c', action='store_true', help='Use concurrent processing')

    return parser


COMMANDS = {
    'totals': compute_totals,
    'tin': check_identifiers,
    'compliance': check_compliance,
    'aging': age_receivables,
    'batch': process_directory,
}


def main(argv=None):
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    config = Config(env_file=args.env_file)
    setup_logging(args.verbose, config['log_level'], config['log_file'] or None)

    try:
        engine = FinancialEngine.from_config(config)
        return COMMANDS[args.command](args, engine)
    except (FileNotFoundError, ParserError) as e:
        logging.error(str(e))
        return 1
    except KeyboardInterrupt:
        logging.info("Operation cancelled by user")
        return 130
    except Exception as e:
        logging.exception(f"Unexpected error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
