"""Tests for receipt and reimbursement generation."""

import base64

import pytest
from reportlab.pdfbase.pdfmetrics import stringWidth

from financeiro.exceptions import AlreadyGenerated, ConfigurationError, TransportError
from financeiro.models import Beneficiary, ChurchSettings, LedgerEntry, ReceiptSequence
from financeiro.pdf_layout import wrap_text
from financeiro.receipts import (
    attach_as_proof,
    build_reimbursement,
    format_amount,
    generate_receipt,
    receipt_url,
)
from financeiro.storage import ObjectStorage


class TestWrapText:
    def test_lines_fit_the_width(self):
        text = "Recebi de Igreja Batista Central a quantia de R$ 150.00 " * 8
        lines = wrap_text(text, "Helvetica", 12, 200)
        assert len(lines) > 1
        assert all(stringWidth(line, "Helvetica", 12) <= 200 for line in lines)
        assert " ".join(lines).split() == text.split()

    def test_long_word_is_broken_by_character(self):
        word = "x" * 200
        lines = wrap_text(word, "Helvetica", 12, 100)
        assert len(lines) > 1
        assert "".join(lines) == word
        assert all(stringWidth(line, "Helvetica", 12) <= 100 for line in lines)

    def test_short_text_is_one_line(self):
        assert wrap_text("Conta de luz", "Helvetica", 12, 400) == ["Conta de luz"]


def test_format_amount():
    assert format_amount("150") == "150.00"
    assert format_amount(None) == "0.00"


@pytest.mark.django_db
class TestGenerateReceipt:
    def test_paid_entry(self, user, church, paid_entry, storage):
        document = generate_receipt(paid_entry, storage=storage)

        assert document.identifier == "000001/2024"
        assert document.content.title == "RECIBO Nº 000001/2024"
        assert document.content.body == (
            'Recebi de Igreja Batista Central a quantia de R$ 150.00 referente a "Conta de luz" em 10/03/2024.'
        )
        assert document.content.church_tax_id == "11.222.333/0001-81"
        assert document.content.footer_name == "Maria Tesoureira"
        assert document.content.footer_tax_id == "111.444.777-35"
        assert document.pdf.startswith(b"%PDF")
        assert b"/Subtype /Image" not in document.pdf
        assert document.path == f"recibos/{user.id}/{paid_entry.id}/2024-000001.pdf"
        assert storage.download("Recibos", document.path) == document.pdf

        paid_entry.refresh_from_db()
        assert paid_entry.receipt_doc_number == 1
        assert paid_entry.receipt_year == 2024
        assert paid_entry.receipt_pdf_path == document.path
        assert paid_entry.receipt_generated_at is not None

    def test_open_entry_uses_due_date_and_amount(self, church, open_entry, storage):
        document = generate_receipt(open_entry, storage=storage)

        assert document.identifier == "000001/2025"
        assert "R$ 800.00" in document.content.body
        assert "15/01/2025" in document.content.body

    def test_second_call_is_refused_without_allocating(self, user, church, paid_entry, storage):
        generate_receipt(paid_entry, storage=storage)

        with pytest.raises(AlreadyGenerated):
            generate_receipt(paid_entry, storage=storage)

        assert ReceiptSequence.objects.get(owner=user, year=2024).last_number == 1

    def test_numbers_follow_the_sequence(self, user, church, paid_entry, storage):
        other = LedgerEntry.objects.create(
            owner=user,
            description="Água",
            amount="90.10",
            due_date=paid_entry.due_date,
        )
        generate_receipt(paid_entry, storage=storage)

        assert generate_receipt(other, storage=storage).identifier == "000002/2024"

    def test_missing_church_settings(self, paid_entry, storage):
        with pytest.raises(ConfigurationError):
            generate_receipt(paid_entry, storage=storage)

    def test_incomplete_church_settings(self, user, paid_entry, storage):
        ChurchSettings.objects.create(
            owner=user,
            church_name="Igreja",
            church_tax_id="11222333000181",
            responsible_name="  ",
            responsible_tax_id="11144477735",
        )
        with pytest.raises(ConfigurationError):
            generate_receipt(paid_entry, storage=storage)

    def test_upload_failure_rolls_back_the_number(self, user, church, paid_entry):
        storage = ObjectStorage(backends={})

        with pytest.raises(TransportError):
            generate_receipt(paid_entry, storage=storage)

        paid_entry.refresh_from_db()
        assert paid_entry.receipt_doc_number is None
        assert not ReceiptSequence.objects.filter(owner=user).exists()

    def test_drawn_signature_is_embedded(self, church, paid_entry, storage, png_bytes):
        data_url = "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")
        with_signature = generate_receipt(paid_entry, drawn_signature=data_url, storage=storage)

        assert b"/Subtype /Image" in with_signature.pdf

    def test_unreadable_signature_is_skipped(self, church, paid_entry, storage):
        document = generate_receipt(paid_entry, drawn_signature=b"garbage", storage=storage)

        assert document.pdf.startswith(b"%PDF")
        assert b"/Subtype /Image" not in document.pdf

    def test_receipt_url_falls_back_to_public_url(self, church, paid_entry, storage):
        assert receipt_url(paid_entry, storage=storage) is None

        document = generate_receipt(paid_entry, storage=storage)

        assert receipt_url(paid_entry, storage=storage) == f"/media/recibos/{document.path}"


@pytest.mark.django_db
class TestReimbursement:
    def test_reuses_the_receipt_number(self, user, church, paid_entry, storage):
        receipt = generate_receipt(paid_entry, storage=storage)

        document = build_reimbursement(paid_entry, storage=storage)

        assert document.number == receipt.number
        assert document.content.title == "REEMBOLSO Nº 000001/2024"
        assert ReceiptSequence.objects.get(owner=user, year=2024).last_number == 1

    def test_allocates_and_saves_number_only(self, church, open_entry, storage):
        document = build_reimbursement(open_entry, storage=storage)

        open_entry.refresh_from_db()
        assert document.identifier == "000001/2025"
        assert open_entry.receipt_doc_number == 1
        assert open_entry.receipt_year == 2025
        assert open_entry.receipt_pdf_path == ""
        assert document.path == ""

    def test_receipt_after_reimbursement_keeps_the_number(self, user, church, open_entry, storage):
        build_reimbursement(open_entry, storage=storage)

        receipt = generate_receipt(open_entry, storage=storage)

        assert receipt.identifier == "000001/2025"
        assert ReceiptSequence.objects.get(owner=user, year=2025).last_number == 1

    def test_body_and_default_footer(self, church, paid_entry, storage):
        document = build_reimbursement(paid_entry, storage=storage)

        assert document.content.body == (
            "Recebi de Igreja Batista Central o reembolso no valor de R$ 150.00 "
            'referente a "Conta de luz" em 10/03/2024.'
        )
        assert document.content.footer_name == "Maria Tesoureira"

    def test_beneficiary_footer(self, user, church, paid_entry, storage):
        beneficiary = Beneficiary.objects.create(owner=user, name="José Pereira", document="111.444.777-35")

        document = build_reimbursement(paid_entry, beneficiary=beneficiary, storage=storage)

        assert document.content.footer_name == "José Pereira"
        assert document.content.footer_tax_id == "111.444.777-35"

    def test_attach_as_proof(self, user, church, paid_entry, storage):
        document = build_reimbursement(paid_entry, storage=storage)

        proof_url = attach_as_proof(paid_entry, document, storage=storage)

        expected_path = f"comprovantes/{user.id}/{paid_entry.id}/reembolso-2024-000001.pdf"
        assert document.path == expected_path
        assert storage.download("Comprovantes", expected_path) == document.pdf
        paid_entry.refresh_from_db()
        assert paid_entry.proof_url == proof_url == f"/media/comprovantes/{expected_path}"

    def test_requires_church_settings(self, paid_entry, storage):
        with pytest.raises(ConfigurationError):
            build_reimbursement(paid_entry, storage=storage)
