import base64
import binascii
import io
import logging
from typing import Iterable, Optional

from PIL import Image, UnidentifiedImageError
from reportlab.lib.utils import ImageReader

from .exceptions import TransportError

logger = logging.getLogger(__name__)

SIGNATURE_BUCKET = "Assinaturas"
SIGNATURE_FORMATS = ("PNG", "JPEG")


class SignatureProvider:
    name = "base"

    def try_resolve(self) -> Optional[bytes]:
        raise NotImplementedError


class DrawnSignature(SignatureProvider):
    """Signature pad output: a ``data:image/...;base64,`` URL or raw bytes."""

    name = "drawn"

    def __init__(self, value):
        self.value = value

    def try_resolve(self):
        if not self.value:
            return None
        if isinstance(self.value, bytes):
            return self.value
        payload = str(self.value)
        if payload.startswith("data:"):
            payload = payload.split(",", 1)[1] if "," in payload else ""
        if not payload.strip():
            return None
        try:
            return base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as exc:
            logger.info("signature_decode_failed source=drawn error=%s", exc)
            return None


class UploadedSignature(SignatureProvider):
    name = "uploaded"

    def __init__(self, file_obj):
        self.file_obj = file_obj

    def try_resolve(self):
        if self.file_obj is None:
            return None
        try:
            if hasattr(self.file_obj, "seek"):
                self.file_obj.seek(0)
            data = self.file_obj.read()
        except OSError as exc:
            logger.info("signature_read_failed source=uploaded error=%s", exc)
            return None
        return data or None


class StoredSignature(SignatureProvider):
    name = "stored"

    def __init__(self, storage, path: str, bucket: str = SIGNATURE_BUCKET):
        self.storage = storage
        self.bucket = bucket
        self.path = (path or "").strip()

    def try_resolve(self):
        if not self.path:
            return None
        try:
            return self.storage.download(self.bucket, self.path) or None
        except TransportError as exc:
            logger.info("signature_download_failed bucket=%s path=%s error=%s", self.bucket, self.path, exc)
            return None


def beneficiary_signature_prefix(owner_id) -> str:
    return f"assinaturas/{owner_id}/beneficiarios"


def _upload_stamp(name: str, prefix: str):
    stamp = name[len(prefix):].split(".", 1)[0]
    return (int(stamp) if stamp.isdigit() else -1, name)


class BeneficiarySignature(SignatureProvider):
    """The beneficiary's own signature.

    Uses ``signature_path`` when set, otherwise the newest upload under the
    owner's beneficiary folder. Uploads are named
    ``<beneficiary_id>-<epoch ms>.<ext>``; names without a numeric stamp rank
    below stamped ones and are ordered by name among themselves.
    """

    name = "beneficiary"

    def __init__(self, storage, owner_id, beneficiary):
        self.storage = storage
        self.owner_id = owner_id
        self.beneficiary = beneficiary

    def _find_path(self) -> str:
        if self.beneficiary is None:
            return ""
        if self.beneficiary.signature_path:
            return self.beneficiary.signature_path
        prefix = f"{self.beneficiary.id}-"
        try:
            objects = self.storage.list(SIGNATURE_BUCKET, beneficiary_signature_prefix(self.owner_id))
        except TransportError as exc:
            logger.info("signature_list_failed owner=%s error=%s", self.owner_id, exc)
            return ""
        candidates = sorted(
            (obj for obj in objects if obj.name.startswith(prefix)),
            key=lambda obj: _upload_stamp(obj.name, prefix),
            reverse=True,
        )
        return candidates[0].path if candidates else ""

    def try_resolve(self):
        path = self._find_path()
        if not path:
            return None
        return StoredSignature(self.storage, path).try_resolve()


def resolve_first(providers: Iterable[SignatureProvider]) -> Optional[bytes]:
    for provider in providers:
        data = provider.try_resolve()
        if data:
            logger.info("signature_resolved source=%s bytes=%s", provider.name, len(data))
            return data
    return None


def receipt_chain(storage, church, *, drawn=None, uploaded=None) -> list[SignatureProvider]:
    return [
        DrawnSignature(drawn),
        UploadedSignature(uploaded),
        StoredSignature(storage, church.signature_path if church else ""),
    ]


def reimbursement_chain(storage, church, beneficiary, *, drawn=None, uploaded=None) -> list[SignatureProvider]:
    owner_id = church.owner_id if church else None
    return [BeneficiarySignature(storage, owner_id, beneficiary)] + receipt_chain(
        storage, church, drawn=drawn, uploaded=uploaded
    )


def load_signature_image(data: Optional[bytes]) -> Optional[ImageReader]:
    if not data:
        return None
    for image_format in SIGNATURE_FORMATS:
        try:
            image = Image.open(io.BytesIO(data), formats=[image_format])
            image.load()
        except (UnidentifiedImageError, OSError, ValueError):
            continue
        if image.mode not in ("RGB", "RGBA", "L"):
            image = image.convert("RGBA")
        return ImageReader(image)
    logger.info("signature_image_unreadable bytes=%s", len(data))
    return None
