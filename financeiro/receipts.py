"""Receipt and reimbursement PDFs for ledger entries.

Both documents share the per-owner, per-year sequence. A receipt is
generated once and stored in the ``Recibos`` bucket; a reimbursement is
rendered on demand and only stored when attached as the entry's proof.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings
from django.db import transaction

from .exceptions import AlreadyGenerated, ConfigurationError, TransportError
from .models import ChurchSettings, LedgerEntry, format_receipt_identifier
from .pdf_layout import DocumentContent, render_document
from .sequences import next_receipt_number
from .signatures import load_signature_image, receipt_chain, reimbursement_chain, resolve_first
from .storage import get_object_storage
from .tax_ids import format_tax_id

logger = logging.getLogger(__name__)

RECEIPT_BUCKET = "Recibos"
PROOF_BUCKET = "Comprovantes"
PDF_CONTENT_TYPE = "application/pdf"
DATE_FORMAT = "%d/%m/%Y"

RECEIPT_TITLE = "RECIBO"
REIMBURSEMENT_TITLE = "REEMBOLSO"
RECEIPT_BODY = 'Recebi de {church_name} a quantia de R$ {amount} referente a "{description}" em {date}.'
REIMBURSEMENT_BODY = (
    'Recebi de {church_name} o reembolso no valor de R$ {amount} referente a "{description}" em {date}.'
)


@dataclass
class GeneratedDocument:
    pdf: bytes
    number: int
    year: int
    content: DocumentContent
    path: str = ""

    @property
    def identifier(self) -> str:
        return format_receipt_identifier(self.number, self.year)


def format_amount(value) -> str:
    return f"{Decimal(value or 0):.2f}"


def build_body(template: str, church: ChurchSettings, entry: LedgerEntry) -> str:
    return template.format(
        church_name=church.church_name,
        amount=format_amount(entry.document_amount),
        description=entry.description,
        date=entry.document_date.strftime(DATE_FORMAT),
    )


def receipt_storage_path(entry: LedgerEntry, number: int, year: int) -> str:
    return f"recibos/{entry.owner_id}/{entry.id}/{year}-{number:06d}.pdf"


def proof_storage_path(entry: LedgerEntry, number: int, year: int) -> str:
    return f"comprovantes/{entry.owner_id}/{entry.id}/reembolso-{year}-{number:06d}.pdf"


def _load_church(owner_id) -> ChurchSettings:
    church = ChurchSettings.objects.filter(owner_id=owner_id).first()
    if church is None or not church.is_complete():
        raise ConfigurationError()
    return church


def _render(title: str, body_template: str, church, entry, number, year, footer_name, footer_tax_id, signature):
    content = DocumentContent(
        church_name=church.church_name,
        church_tax_id=format_tax_id(church.church_tax_id),
        title=f"{title} Nº {format_receipt_identifier(number, year)}",
        body=build_body(body_template, church, entry),
        footer_name=footer_name,
        footer_tax_id=format_tax_id(footer_tax_id),
    )
    pdf = render_document(content, load_signature_image(signature))
    return GeneratedDocument(pdf=pdf, number=number, year=year, content=content)


def generate_receipt(entry: LedgerEntry, *, drawn_signature=None, uploaded_signature=None, storage=None):
    """Allocate a number, render and store the receipt for ``entry``.

    Runs in one transaction holding the entry row lock, so a second call for
    the same entry waits and then fails with ``AlreadyGenerated``. A failed
    upload rolls the allocated number back; a failure after the upload leaves
    the stored file without a referencing entry.
    """
    storage = storage or get_object_storage()
    church = _load_church(entry.owner_id)

    with transaction.atomic():
        locked = LedgerEntry.objects.select_for_update().get(pk=entry.pk)
        if locked.receipt_locked:
            logger.info("receipt_already_generated entry=%s path=%s", locked.id, locked.receipt_pdf_path)
            raise AlreadyGenerated()

        if locked.receipt_doc_number is not None and locked.receipt_year is not None:
            number, year = locked.receipt_doc_number, locked.receipt_year
        else:
            year = locked.document_date.year
            number = next_receipt_number(locked.owner_id, year)

        signature = resolve_first(
            receipt_chain(storage, church, drawn=drawn_signature, uploaded=uploaded_signature)
        )
        document = _render(
            RECEIPT_TITLE,
            RECEIPT_BODY,
            church,
            locked,
            number,
            year,
            church.responsible_name,
            church.responsible_tax_id,
            signature,
        )

        path = receipt_storage_path(locked, number, year)
        document.path = storage.upload(RECEIPT_BUCKET, path, document.pdf, PDF_CONTENT_TYPE)

        locked.receipt_doc_number = number
        locked.receipt_year = year
        locked.mark_receipt_generated(document.path)
        locked.save(
            update_fields=[
                "receipt_doc_number",
                "receipt_year",
                "receipt_pdf_path",
                "receipt_generated_at",
                "updated_at",
            ]
        )

    for field in ("receipt_doc_number", "receipt_year", "receipt_pdf_path", "receipt_generated_at"):
        setattr(entry, field, getattr(locked, field))

    logger.info(
        "receipt_generated entry=%s number=%s path=%s signed=%s",
        entry.id,
        document.identifier,
        document.path,
        bool(signature),
    )
    return document


def receipt_url(entry: LedgerEntry, *, storage=None, ttl_seconds=None):
    if not entry.receipt_pdf_path:
        return None
    storage = storage or get_object_storage()
    ttl_seconds = ttl_seconds or settings.SIGNED_URL_TTL_SECONDS
    try:
        return storage.create_signed_url(RECEIPT_BUCKET, entry.receipt_pdf_path, ttl_seconds)
    except TransportError as exc:
        logger.info("receipt_url_unsigned entry=%s reason=%s", entry.id, exc)
        return storage.get_public_url(RECEIPT_BUCKET, entry.receipt_pdf_path)


def build_reimbursement(
    entry: LedgerEntry,
    *,
    beneficiary=None,
    drawn_signature=None,
    uploaded_signature=None,
    storage=None,
):
    """Render the reimbursement PDF in memory.

    The entry's receipt number is reused when it has one; otherwise a number
    is allocated and saved on the entry (number and year only).
    """
    storage = storage or get_object_storage()
    church = _load_church(entry.owner_id)

    with transaction.atomic():
        locked = LedgerEntry.objects.select_for_update().get(pk=entry.pk)
        if locked.receipt_doc_number is not None and locked.receipt_year is not None:
            number, year = locked.receipt_doc_number, locked.receipt_year
        else:
            year = locked.document_date.year
            number = next_receipt_number(locked.owner_id, year)
            locked.receipt_doc_number = number
            locked.receipt_year = year
            locked.save(update_fields=["receipt_doc_number", "receipt_year", "updated_at"])

    entry.receipt_doc_number = number
    entry.receipt_year = year

    if beneficiary is not None:
        footer_name, footer_tax_id = beneficiary.name, beneficiary.document
    else:
        footer_name, footer_tax_id = church.responsible_name, church.responsible_tax_id

    signature = resolve_first(
        reimbursement_chain(storage, church, beneficiary, drawn=drawn_signature, uploaded=uploaded_signature)
    )
    document = _render(
        REIMBURSEMENT_TITLE,
        REIMBURSEMENT_BODY,
        church,
        locked,
        number,
        year,
        footer_name,
        footer_tax_id,
        signature,
    )
    logger.info(
        "reimbursement_built entry=%s number=%s beneficiary=%s signed=%s",
        entry.id,
        document.identifier,
        beneficiary.id if beneficiary is not None else "-",
        bool(signature),
    )
    return document


def attach_as_proof(entry: LedgerEntry, document: GeneratedDocument, *, storage=None) -> str:
    storage = storage or get_object_storage()
    path = proof_storage_path(entry, document.number, document.year)
    document.path = storage.upload(PROOF_BUCKET, path, document.pdf, PDF_CONTENT_TYPE, upsert=True)
    entry.proof_url = storage.get_public_url(PROOF_BUCKET, document.path)
    entry.save(update_fields=["proof_url", "updated_at"])
    logger.info("reimbursement_attached entry=%s path=%s", entry.id, document.path)
    return entry.proof_url
