import pytest

from financeiro.exceptions import TransportError
from financeiro.storage import StoredObject


def test_upload_and_download(storage):
    path = storage.upload("Recibos", "recibos/1/a.pdf", b"%PDF-1.4", "application/pdf")

    assert path == "recibos/1/a.pdf"
    assert storage.download("Recibos", path) == b"%PDF-1.4"


def test_upload_refuses_overwrite_unless_upsert(storage):
    storage.upload("Comprovantes", "comprovantes/1/a.pdf", b"v1")

    with pytest.raises(TransportError):
        storage.upload("Comprovantes", "comprovantes/1/a.pdf", b"v2")

    storage.upload("Comprovantes", "comprovantes/1/a.pdf", b"v2", upsert=True)
    assert storage.download("Comprovantes", "comprovantes/1/a.pdf") == b"v2"


def test_list_returns_sorted_objects(storage):
    storage.upload("Assinaturas", "assinaturas/1/beneficiarios/b.png", b"b")
    storage.upload("Assinaturas", "assinaturas/1/beneficiarios/a.png", b"a")

    assert storage.list("Assinaturas", "assinaturas/1/beneficiarios/") == [
        StoredObject(name="a.png", path="assinaturas/1/beneficiarios/a.png"),
        StoredObject(name="b.png", path="assinaturas/1/beneficiarios/b.png"),
    ]
    assert storage.list("Assinaturas", "assinaturas/2/beneficiarios") == []


def test_signed_url_requires_bucket_backend(storage):
    storage.upload("Recibos", "recibos/1/a.pdf", b"x")

    with pytest.raises(TransportError):
        storage.create_signed_url("Recibos", "recibos/1/a.pdf", 60)
    assert storage.get_public_url("Recibos", "recibos/1/a.pdf") == "/media/recibos/recibos/1/a.pdf"


def test_unknown_bucket(storage):
    with pytest.raises(TransportError):
        storage.download("Desconhecido", "x")
