"""
JSON document loaders.
Read invoice drafts, tax profiles and receivables exports into plain models.
Uses generators for memory-efficient batch processing.
"""
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Generator, List, Optional, Union

from pydantic import ValidationError

from findoc_engine.core.models import InvoiceDocument, TaxProfile

logger = logging.getLogger(__name__)


class ParserError(Exception):
    """Raised when a document cannot be read"""
    pass


def _read_json(file_path: Union[str, Path]) -> Any:
    """Load JSON with Decimal numbers so amounts never pass through float"""
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Document not found: {file_path}")
    if path.suffix.lower() != '.json':
        raise ParserError(f"Unsupported file format: {path.suffix}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f, parse_float=Decimal)
    except (OSError, ValueError) as e:
        raise ParserError(f"Failed to read {path.name}: {str(e)}") from e


def load_invoice_document(file_path: Union[str, Path]) -> InvoiceDocument:
    """
    Load an invoice document.

    Expected shape:
        {"invoice_number": "INV-1", "invoice_discount": "50.00",
         "lines": [{"description": "...", "quantity": 1, "unit_price": "100",
                    "tax_rate": 16, "discount_rate": 0}]}

    Line contents are validated later by the engine so that every field
    problem is reported together.
    """
    data = _read_json(file_path)
    if not isinstance(data, dict):
        raise ParserError(f"Invoice document must be a JSON object: {file_path}")

    data.setdefault('invoice_number', Path(file_path).stem)
    data['source_name'] = Path(file_path).stem
    if not isinstance(data.get('lines', []), list):
        raise ParserError(f"'lines' must be a list: {file_path}")

    try:
        return InvoiceDocument(**data)
    except ValidationError as e:
        raise ParserError(f"Failed to parse invoice document: {str(e)}") from e


def load_tax_profile(file_path: Union[str, Path]) -> Optional[TaxProfile]:
    """
    Load a customer tax profile.

    The file holds either the profile object itself or {"profile": ...};
    {"profile": null} means the customer has no profile on record.
    """
    data = _read_json(file_path)
    if isinstance(data, dict) and 'profile' in data:
        data = data['profile']
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ParserError(f"Tax profile must be a JSON object: {file_path}")

    try:
        return TaxProfile(**data)
    except (ValidationError, OverflowError) as e:
        # dateutil raises OverflowError for absurd years, outside pydantic's net
        raise ParserError(f"Failed to parse tax profile: {str(e)}") from e


def load_receivables(file_path: Union[str, Path]) -> List[Any]:
    """
    Load outstanding invoice records: a list, or {"invoices": [...]}.
    Records are validated by the aging classifier.
    """
    data = _read_json(file_path)
    if isinstance(data, dict):
        data = data.get('invoices')
    if not isinstance(data, list):
        raise ParserError(f"Receivables file must hold a list of invoices: {file_path}")
    return data


def invoice_document_generator(directory: Union[str, Path],
                               pattern: str = "*.json") -> Generator[InvoiceDocument, None, None]:
    """
    Generator that yields parsed invoice documents from a directory.
    Unreadable files are logged and skipped.

    Example:
        for document in invoice_document_generator('drafts/'):
            engine.compute_document(document)
    """
    dir_path = Path(directory)

    if not dir_path.exists():
        raise FileNotFoundError(f"Directory not found: {directory}")

    for file_path in sorted(dir_path.glob(pattern)):
        if file_path.is_file():
            try:
                yield load_invoice_document(file_path)
            except ParserError as e:
                logger.error(f"Failed to parse {file_path}: {e}")
                continue


def batch_document_generator(directory: Union[str, Path],
                             batch_size: int = 100,
                             pattern: str = "*.json") -> Generator[List[InvoiceDocument], None, None]:
    """
    Generator that yields lists of invoice documents.
    Useful for bulk processing with threading pools.
    """
    batch = []

    for document in invoice_document_generator(directory, pattern):
        batch.append(document)

        if len(batch) >= batch_size:
            yield batch
            batch = []

    # Yield remaining documents
    if batch:
        yield batch
