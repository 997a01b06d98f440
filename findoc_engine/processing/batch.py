"""
Batch processing utilities using generators for memory efficiency.
Computes totals for many invoice documents without loading all into memory.
"""
import functools
import logging
import re
import time
from pathlib import Path
from typing import Callable, Iterable, Optional

from findoc_engine.core.engine import FinancialEngine
from findoc_engine.core.models import (
    BatchResult,
    DocumentResult,
    EngineValidationError,
    IdentifierBatchResult,
    IdentifierCheck,
    InvoiceDocument,
)
from findoc_engine.core.parsers import invoice_document_generator
from findoc_engine.core.validators import classify_tax_identifier
from findoc_engine.utils.decorators import measure_performance

logger = logging.getLogger(__name__)


def compute_document_result(engine: FinancialEngine, document: InvoiceDocument) -> DocumentResult:
    """Totals for one document, or its rejection reasons"""
    start = time.perf_counter()
    try:
        totals = engine.compute_document(document)
        result = DocumentResult(invoice_number=document.invoice_number, source_name=document.source_name,
                                totals=totals)
    except EngineValidationError as e:
        result = DocumentResult(invoice_number=document.invoice_number, source_name=document.source_name,
                                errors=e.messages())
    result.processing_time_ms = (time.perf_counter() - start) * 1000
    return result


_UNSAFE_FILENAME_CHARS = re.compile(r'[^A-Za-z0-9._-]')


def result_filename(result: DocumentResult) -> str:
    """
    File name for a written result.

    The source file stem is preferred so two documents sharing an invoice
    number never overwrite each other. Otherwise the invoice number is used
    with path separators and other unsafe characters replaced.
    """
    name = result.source_name or result.invoice_number
    name = _UNSAFE_FILENAME_CHARS.sub('_', name).lstrip('.')
    return f"{name or 'UNKNOWN'}.json"


def write_result(result: DocumentResult, output_dir: Path) -> Path:
    """Write one document result into output_dir, see result_filename"""
    report_file = output_dir / result_filename(result)
    with open(report_file, 'w', encoding='utf-8') as f:
        f.write(result.model_dump_json(indent=2))
    return report_file


class BatchProcessor:
    """
    Sequential batch processor using generators.
    Memory-efficient but single-threaded.
    """

    def __init__(self, engine: Optional[FinancialEngine] = None):
        self.engine = engine or FinancialEngine()

    @measure_performance
    def process_generator(self,
                          document_gen: Iterable[InvoiceDocument],
                          callback: Optional[Callable] = None) -> BatchResult:
        """
        Compute totals for documents from a generator.

        Args:
            document_gen: Iterable yielding InvoiceDocument objects
            callback: Optional function called after each document
                     Signature: callback(result: DocumentResult) -> None

        Returns:
            BatchResult with statistics
        """
        start_time = time.time()
        batch_result = BatchResult()

        for document in document_gen:
            try:
                result = compute_document_result(self.engine, document)
            except Exception as e:
                logger.error(f"Error processing invoice {document.invoice_number}: {e}")
                result = DocumentResult(
                    invoice_number=document.invoice_number,
                    source_name=document.source_name,
                    errors=[f'Processing error: {str(e)}'],
                )

            batch_result.add_result(result)
            if callback:
                callback(result)

            # Log progress every 100 documents
            if batch_result.total % 100 == 0:
                logger.info(
                    f"Processed {batch_result.total} invoices "
                    f"({batch_result.computed_count} computed)"
                )

        batch_result.processing_time_seconds = time.time() - start_time

        logger.info(
            f"Batch complete: {batch_result.total} invoices in "
            f"{batch_result.processing_time_seconds:.2f}s"
        )
        return batch_result

    @measure_performance
    def process_directory(self,
                          directory: Path,
                          pattern: str = "*.json",
                          output_dir: Optional[Path] = None) -> BatchResult:
        """
        Compute totals for all invoice documents in a directory.

        Args:
            directory: Directory containing JSON invoice documents
            pattern: File pattern to match
            output_dir: If given, each result is written there as JSON

        Returns:
            BatchResult
        """
        logger.info(f"Starting batch processing: {directory}")

        callback = None
        if output_dir:
            output_dir.mkdir(parents=True, exist_ok=True)
            callback = functools.partial(write_result, output_dir=output_dir)

        gen = invoice_document_generator(directory, pattern)
        return self.process_generator(gen, callback=callback)

    def validate_identifiers(self, identifiers: Iterable[Optional[str]]) -> IdentifierBatchResult:
        """
        Validate many tax identifiers, e.g. for every customer on file.
        Empty identifiers are counted as skipped.
        """
        batch = IdentifierBatchResult()

        for raw in identifiers:
            result = self.engine.validate_identifier(raw)
            if result.cleaned is None and result.is_valid:
                batch.skipped += 1
            elif result.is_valid:
                batch.validated += 1
            else:
                batch.failed += 1

            batch.results.append(IdentifierCheck(
                raw=raw,
                result=result,
                category=classify_tax_identifier(
                    raw, self.engine.identifier_validator.config.length
                ),
            ))

        logger.info(
            f"Identifier validation complete: {batch.validated} valid, "
            f"{batch.failed} invalid, {batch.skipped} empty"
        )
        return batch


def group_by_error(results: Iterable[DocumentResult]) -> dict:
    """
    Group rejected documents by error message.

    Returns:
        Dictionary mapping error messages to lists of invoice numbers
    """
    errors_map = {}

    for result in results:
        for error in result.errors:
            errors_map.setdefault(error, []).append(result.invoice_number)

    return errors_map
