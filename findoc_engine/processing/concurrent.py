"""
Concurrent processing using ThreadPoolExecutor.
The calculation functions are pure, so one engine instance is shared by
all workers; results come back in input order.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from findoc_engine.core.engine import FinancialEngine
from findoc_engine.core.models import (
    BatchResult,
    DocumentResult,
    InvoiceDocument,
    TaxIdentifierResult,
)
from findoc_engine.core.parsers import batch_document_generator
from findoc_engine.processing.batch import compute_document_result, write_result
from findoc_engine.utils.decorators import measure_performance, performance_context

logger = logging.getLogger(__name__)


class ConcurrentProcessor:
    """Thread pool front end for bulk invoice computation"""

    def __init__(self, max_workers: Optional[int] = None,
                 engine: Optional[FinancialEngine] = None):
        """
        Args:
            max_workers: Maximum number of worker threads (executor default if None)
            engine: Shared engine instance
        """
        self.max_workers = max_workers
        self.engine = engine or FinancialEngine()

    def compute_one(self, document: InvoiceDocument) -> DocumentResult:
        try:
            return compute_document_result(self.engine, document)
        except Exception as e:
            logger.error(f"Computation failed for invoice {document.invoice_number}: {e}")
            return DocumentResult(
                invoice_number=document.invoice_number,
                source_name=document.source_name,
                errors=[f'Processing error: {str(e)}'],
            )

    @measure_performance
    def compute_batch(self, documents: Sequence[InvoiceDocument]) -> List[DocumentResult]:
        """
        Compute totals for many documents concurrently.

        Returns:
            List of DocumentResult in the same order as documents
        """
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(self.compute_one, documents))

    @measure_performance
    def process_directory(self,
                          directory: Path,
                          pattern: str = "*.json",
                          output_dir: Optional[Path] = None,
                          callback: Optional[Callable] = None,
                          chunk_size: int = 100) -> BatchResult:
        """
        Compute totals for every invoice document in a directory concurrently.
        Documents are read in chunks so large directories never sit in memory
        all at once.

        Args:
            directory: Directory containing JSON invoice documents
            pattern: File pattern to match
            output_dir: If given, each result is written there as JSON
            callback: Optional callback called for each result, in file order
            chunk_size: Documents handed to the pool at a time

        Returns:
            BatchResult with aggregated statistics
        """
        start_time = time.time()
        batch_result = BatchResult()

        if output_dir:
            output_dir.mkdir(parents=True, exist_ok=True)

        for chunk in batch_document_generator(directory, chunk_size, pattern):
            for result in self.compute_batch(chunk):
                batch_result.add_result(result)
                if output_dir:
                    write_result(result, output_dir)
                if callback:
                    callback(result)

        if batch_result.total == 0:
            logger.warning(f"No invoice documents found in {directory} matching {pattern}")
            return batch_result

        batch_result.processing_time_seconds = time.time() - start_time

        logger.info(
            f"Computation complete: {batch_result.computed_count}/{batch_result.total} "
            f"computed in {batch_result.processing_time_seconds:.2f}s"
        )
        return batch_result

    def validate_identifiers(self, identifiers: Sequence[Optional[str]]) -> List[TaxIdentifierResult]:
        """Validate identifiers concurrently, preserving input order"""
        with performance_context(f"validate {len(identifiers)} identifiers"):
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                return list(executor.map(self.engine.validate_identifier, identifiers))


def compute_documents_parallel(documents: Sequence[InvoiceDocument],
                               max_workers: Optional[int] = None) -> List[DocumentResult]:
    """Convenience function for parallel computation"""
    return ConcurrentProcessor(max_workers=max_workers).compute_batch(documents)
