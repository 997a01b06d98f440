"""
Tests for document loading, batch and concurrent processing.
"""
import json
from decimal import Decimal

import pytest

from findoc_engine.core.engine import FinancialEngine
from findoc_engine.core.models import DocumentResult, IdentifierCategory, InvoiceDocument
from findoc_engine.core.parsers import (
    ParserError,
    batch_document_generator,
    invoice_document_generator,
    load_invoice_document,
    load_receivables,
    load_tax_profile,
)
from findoc_engine.processing.batch import BatchProcessor, group_by_error, write_result
from findoc_engine.processing.concurrent import ConcurrentProcessor, compute_documents_parallel
from findoc_engine.reports.generator import generate_batch_report


GOOD_INVOICE = {
    "invoice_number": "INV-001",
    "invoice_discount": 50.00,
    "lines": [
        {"description": "Service", "quantity": 1, "unit_price": 100.00, "tax_rate": 16},
        {"description": "Exported goods", "quantity": 1, "unit_price": 100.00, "tax_rate": 0},
    ],
}

BAD_INVOICE = {
    "invoice_number": "INV-002",
    "lines": [{"description": "Broken", "quantity": -1, "unit_price": 10, "tax_rate": 16}],
}


def _write(path, payload):
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture
def invoice_dir(tmp_path):
    drafts = tmp_path / "drafts"
    drafts.mkdir()
    _write(drafts / "a_good.json", GOOD_INVOICE)
    _write(drafts / "b_bad.json", BAD_INVOICE)
    (drafts / "c_broken.json").write_text("{not json", encoding="utf-8")
    (drafts / "notes.txt").write_text("ignored", encoding="utf-8")
    return drafts


def _documents(count):
    return [
        InvoiceDocument(
            invoice_number=f"INV-{i:03d}",
            invoice_discount=Decimal(i % 7),
            lines=[
                {"quantity": i % 5 + 1, "unit_price": f"{i}.99", "tax_rate": 16},
                {"quantity": 1, "unit_price": "12.50", "tax_rate": 0, "discount_rate": 10},
            ],
        )
        for i in range(count)
    ]


class TestParsers:

    def test_load_invoice_document(self, tmp_path):
        document = load_invoice_document(_write(tmp_path / "inv.json", GOOD_INVOICE))

        assert document.invoice_number == "INV-001"
        # JSON numbers arrive as Decimal, never float
        assert document.invoice_discount == Decimal("50.00")
        assert isinstance(document.lines[0]["unit_price"], Decimal)

    def test_invoice_number_defaults_to_file_name(self, tmp_path):
        payload = {"lines": GOOD_INVOICE["lines"]}
        document = load_invoice_document(_write(tmp_path / "draft-17.json", payload))

        assert document.invoice_number == "draft-17"

    def test_source_name_is_file_stem(self, tmp_path):
        document = load_invoice_document(_write(tmp_path / "march.json", GOOD_INVOICE))

        assert document.invoice_number == "INV-001"
        assert document.source_name == "march"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_invoice_document(tmp_path / "missing.json")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "invoice.xml"
        path.write_text("<Invoice/>", encoding="utf-8")

        with pytest.raises(ParserError):
            load_invoice_document(path)

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{", encoding="utf-8")

        with pytest.raises(ParserError):
            load_invoice_document(path)

    def test_lines_must_be_a_list(self, tmp_path):
        with pytest.raises(ParserError):
            load_invoice_document(_write(tmp_path / "inv.json", {"lines": {"a": 1}}))

    def test_load_tax_profile(self, tmp_path):
        path = _write(tmp_path / "customer.json", {
            "identifier": "4821093765",
            "identifier_validated": True,
            "exemption": True,
            "exemption_valid_until": "2025-01-31",
        })
        profile = load_tax_profile(path)

        assert profile.identifier == "4821093765"
        assert profile.exemption_valid_until.isoformat() == "2025-01-31"

    def test_profile_with_absurd_year_is_a_parser_error(self, tmp_path):
        path = _write(tmp_path / "customer.json", {
            "exemption": True,
            "exemption_valid_until": "99999999999999999999",
        })

        with pytest.raises(ParserError):
            load_tax_profile(path)

    def test_missing_profile_is_none(self, tmp_path):
        assert load_tax_profile(_write(tmp_path / "customer.json", {"profile": None})) is None

    def test_load_receivables(self, tmp_path):
        records = [{"amount": "10.00", "due_date": "2024-01-01"}]

        assert load_receivables(_write(tmp_path / "a.json", records)) == records
        assert load_receivables(_write(tmp_path / "b.json", {"invoices": records})) == records

    def test_receivables_must_be_a_list(self, tmp_path):
        with pytest.raises(ParserError):
            load_receivables(_write(tmp_path / "r.json", {"rows": []}))

    def test_generator_skips_unreadable_files(self, invoice_dir):
        numbers = [d.invoice_number for d in invoice_document_generator(invoice_dir)]

        assert numbers == ["INV-001", "INV-002"]

    def test_generator_requires_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            list(invoice_document_generator(tmp_path / "nowhere"))

    def test_batch_generator_chunks(self, invoice_dir):
        chunks = list(batch_document_generator(invoice_dir, batch_size=1))

        assert [len(c) for c in chunks] == [1, 1]


class TestBatchProcessor:

    def test_process_directory(self, invoice_dir):
        result = BatchProcessor().process_directory(invoice_dir)

        assert result.total == 2
        assert result.computed_count == 1
        assert result.failed_count == 1

        good, bad = result.results
        assert good.succeeded
        assert good.totals.grand_total == Decimal("162.00")
        assert not bad.succeeded
        assert len(bad.errors) == 1
        assert bad.errors[0].startswith("lines[0].quantity:")

    def test_results_written_to_output_dir(self, invoice_dir, tmp_path):
        output = tmp_path / "out"
        BatchProcessor().process_directory(invoice_dir, output_dir=output)

        written = json.loads((output / "a_good.json").read_text(encoding="utf-8"))
        assert written["totals"]["grand_total"] == "162.00"
        assert (output / "b_bad.json").exists()

    def test_shared_invoice_number_does_not_overwrite(self, tmp_path):
        drafts = tmp_path / "drafts"
        drafts.mkdir()
        _write(drafts / "first.json", GOOD_INVOICE)
        _write(drafts / "second.json", GOOD_INVOICE)
        output = tmp_path / "out"

        BatchProcessor().process_directory(drafts, output_dir=output)

        assert sorted(p.name for p in output.iterdir()) == ["first.json", "second.json"]

    def test_invoice_number_cannot_escape_output_dir(self, tmp_path):
        output = tmp_path / "out"
        output.mkdir()
        result = DocumentResult(invoice_number="../../etc/INV-9", errors=["x"])

        written = write_result(result, output)

        assert written.parent == output
        assert written.name == "_.._etc_INV-9.json"
        assert list(tmp_path.iterdir()) == [output]

    def test_dot_only_invoice_number_falls_back(self, tmp_path):
        written = write_result(DocumentResult(invoice_number=".."), tmp_path)

        assert written == tmp_path / "UNKNOWN.json"

    def test_callback_sees_every_result(self):
        seen = []
        BatchProcessor().process_generator(iter(_documents(3)), callback=seen.append)

        assert [r.invoice_number for r in seen] == ["INV-000", "INV-001", "INV-002"]

    def test_group_by_error(self, invoice_dir):
        result = BatchProcessor().process_directory(invoice_dir)
        grouped = group_by_error(result.results)

        assert list(grouped.values()) == [["INV-002"]]

    def test_batch_report_lists_rejections(self, invoice_dir):
        report = generate_batch_report(BatchProcessor().process_directory(invoice_dir))

        assert "Total Invoices Processed:  2" in report
        assert "Invoice: INV-002" in report

    def test_validate_identifiers(self):
        batch = BatchProcessor().validate_identifiers(["4821093765", "", "0000000000", None])

        assert batch.validated == 1
        assert batch.failed == 1
        assert batch.skipped == 2
        assert batch.results[2].result.error_codes == ["all-same-digit"]

    def test_non_ascii_digits_count_as_failed(self):
        batch = BatchProcessor().validate_identifiers([
            "\u00b2234567890",  # superscript two
            "\u0664\u0668\u0662\u0661\u0660\u0669\u0663\u0667\u0666\u0665",  # Arabic-Indic digits
        ])

        assert batch.failed == 2
        assert [c.result.error_codes for c in batch.results] == [["format"], ["format"]]
        assert {c.category for c in batch.results} == {IdentifierCategory.UNKNOWN}


class TestConcurrentProcessor:

    def test_results_match_sequential_order(self):
        documents = _documents(40)
        engine = FinancialEngine()

        sequential = BatchProcessor(engine).process_generator(iter(documents)).results
        concurrent = ConcurrentProcessor(max_workers=4, engine=engine).compute_batch(documents)

        assert [r.invoice_number for r in concurrent] == [d.invoice_number for d in documents]
        assert [r.totals for r in concurrent] == [r.totals for r in sequential]

    def test_repeated_runs_are_identical(self):
        documents = _documents(25)

        first = compute_documents_parallel(documents, max_workers=8)
        second = compute_documents_parallel(documents, max_workers=2)

        assert [r.totals for r in first] == [r.totals for r in second]

    def test_process_directory(self, invoice_dir, tmp_path):
        output = tmp_path / "out"
        result = ConcurrentProcessor(max_workers=2).process_directory(
            invoice_dir, output_dir=output, chunk_size=1
        )

        assert result.total == 2
        assert result.computed_count == 1
        assert [r.invoice_number for r in result.results] == ["INV-001", "INV-002"]
        assert (output / "a_good.json").exists()

    def test_empty_directory(self, tmp_path):
        result = ConcurrentProcessor().process_directory(tmp_path)

        assert result.total == 0

    def test_validate_identifiers_keeps_order(self):
        results = ConcurrentProcessor(max_workers=3).validate_identifiers(
            ["4821093765", "1234567890", "", "48210"]
        )

        assert [r.is_valid for r in results] == [True, False, True, False]
        assert results[1].error_codes == ["sequential"]
        assert results[3].error_codes == ["format"]
