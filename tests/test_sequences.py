import pytest

from financeiro.models import ReceiptSequence, format_receipt_identifier
from financeiro.sequences import next_receipt_number


@pytest.mark.django_db
def test_numbers_are_strictly_increasing(user):
    numbers = [next_receipt_number(user.id, 2024) for _ in range(5)]
    assert numbers == [1, 2, 3, 4, 5]
    assert ReceiptSequence.objects.get(owner=user, year=2024).last_number == 5


@pytest.mark.django_db
def test_sequences_are_per_owner_and_year(user, other_user):
    assert next_receipt_number(user.id, 2024) == 1
    assert next_receipt_number(user.id, 2025) == 1
    assert next_receipt_number(other_user.id, 2024) == 1
    assert next_receipt_number(user.id, 2024) == 2


def test_receipt_identifier_format():
    assert format_receipt_identifier(1, 2024) == "000001/2024"
    assert format_receipt_identifier(123456, 2025) == "123456/2025"
