import logging

from django.db import transaction
from django.db.models import F

from .models import ReceiptSequence

logger = logging.getLogger(__name__)


def next_receipt_number(owner_id, year: int) -> int:
    """Allocate the next receipt number for ``(owner_id, year)``.

    The sequence row is locked for the rest of the enclosing transaction, so
    concurrent callers for the same owner/year get distinct, increasing
    numbers. When called inside a larger ``atomic`` block a rollback there
    also gives the number back.
    """
    with transaction.atomic():
        sequence, _ = ReceiptSequence.objects.select_for_update().get_or_create(
            owner_id=owner_id,
            year=year,
        )
        ReceiptSequence.objects.filter(pk=sequence.pk).update(last_number=F("last_number") + 1)
        sequence.refresh_from_db(fields=["last_number"])
    logger.info("receipt_number_allocated owner=%s year=%s number=%s", owner_id, year, sequence.last_number)
    return sequence.last_number
