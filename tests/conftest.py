"""Shared pytest fixtures for tesouraria tests."""

import datetime
import io
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.files.storage import InMemoryStorage
from PIL import Image
from rest_framework.test import APIClient

from financeiro.models import ChurchSettings, EntryStatus, LedgerEntry
from financeiro.storage import ObjectStorage

VALID_CNPJ = "11222333000181"
VALID_CPF = "11144477735"


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(username="tesoureiro", password="senha-forte-123")


@pytest.fixture
def other_user(db):
    return get_user_model().objects.create_user(username="outro", password="senha-forte-123")


@pytest.fixture
def staff_user(db):
    return get_user_model().objects.create_user(
        username="admin", password="senha-forte-123", is_staff=True
    )


@pytest.fixture
def church(user):
    return ChurchSettings.objects.create(
        owner=user,
        church_name="Igreja Batista Central",
        church_tax_id=VALID_CNPJ,
        responsible_name="Maria Tesoureira",
        responsible_tax_id=VALID_CPF,
    )


@pytest.fixture
def storage():
    """Object storage backed by fresh in-memory Django storages."""
    return ObjectStorage(
        backends={
            "Assinaturas": InMemoryStorage(),
            "Recibos": InMemoryStorage(base_url="/media/recibos/"),
            "Comprovantes": InMemoryStorage(base_url="/media/comprovantes/"),
        }
    )


@pytest.fixture
def paid_entry(user):
    return LedgerEntry.objects.create(
        owner=user,
        description="Conta de luz",
        amount=Decimal("150.00"),
        due_date=datetime.date(2024, 3, 5),
        status=EntryStatus.PAGO,
        payment_date=datetime.date(2024, 3, 10),
        paid_amount=Decimal("150.00"),
    )


@pytest.fixture
def open_entry(user):
    return LedgerEntry.objects.create(
        owner=user,
        description="Aluguel do salão",
        amount=Decimal("800.00"),
        due_date=datetime.date(2025, 1, 15),
    )


def _image_bytes(image_format: str) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (40, 20), color=(10, 10, 10)).save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    return _image_bytes("PNG")


@pytest.fixture
def jpeg_bytes():
    return _image_bytes("JPEG")


@pytest.fixture
def api_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client
