"""Bucket-style object storage over Django storage backends.

Buckets are logical names mapped to ``STORAGES`` aliases through
``settings.OBJECT_STORAGE_BUCKETS``; in production the aliases point at
django-storages S3 backends, locally at ``FileSystemStorage``.
"""

import logging
import posixpath
from dataclasses import dataclass

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import storages

from .exceptions import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredObject:
    name: str
    path: str


class ObjectStorage:
    def __init__(self, backends=None):
        self._backends = dict(backends) if backends is not None else None

    @classmethod
    def from_settings(cls):
        return cls()

    def _backend(self, bucket: str):
        if self._backends is not None:
            try:
                return self._backends[bucket]
            except KeyError as exc:
                raise TransportError(f"Bucket desconhecido: {bucket}") from exc
        alias = settings.OBJECT_STORAGE_BUCKETS.get(bucket)
        if not alias:
            raise TransportError(f"Bucket desconhecido: {bucket}")
        return storages[alias]

    def upload(self, bucket: str, path: str, data: bytes, content_type: str = "", *, upsert: bool = False) -> str:
        backend = self._backend(bucket)
        try:
            if backend.exists(path):
                if not upsert:
                    raise TransportError(f"Arquivo já existe: {path}")
                backend.delete(path)
            content = ContentFile(data, name=posixpath.basename(path))
            if content_type:
                content.content_type = content_type
            saved = backend.save(path, content)
        except TransportError:
            raise
        except Exception as exc:
            logger.warning("storage_upload_failed bucket=%s path=%s error=%s", bucket, path, exc)
            raise TransportError(f"Falha no upload: {exc}") from exc
        logger.info("storage_upload bucket=%s path=%s bytes=%s", bucket, saved, len(data))
        return saved

    def create_signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        backend = self._backend(bucket)
        if not hasattr(backend, "bucket_name"):
            raise TransportError("Backend de armazenamento não suporta URL assinada.")
        try:
            return backend.url(path, expire=ttl_seconds)
        except Exception as exc:
            logger.warning("storage_sign_failed bucket=%s path=%s error=%s", bucket, path, exc)
            raise TransportError(f"Falha ao assinar URL: {exc}") from exc

    def get_public_url(self, bucket: str, path: str) -> str:
        backend = self._backend(bucket)
        try:
            if hasattr(backend, "bucket_name"):
                return backend.url(path).split("?", 1)[0]
            return backend.url(path)
        except Exception as exc:
            raise TransportError(f"Falha ao montar URL pública: {exc}") from exc

    def download(self, bucket: str, path: str) -> bytes:
        backend = self._backend(bucket)
        try:
            with backend.open(path, "rb") as file_obj:
                return file_obj.read()
        except Exception as exc:
            logger.warning("storage_download_failed bucket=%s path=%s error=%s", bucket, path, exc)
            raise TransportError(f"Falha ao baixar arquivo: {exc}") from exc

    def list(self, bucket: str, prefix: str) -> list[StoredObject]:
        backend = self._backend(bucket)
        folder = prefix.rstrip("/")
        try:
            _, files = backend.listdir(folder)
        except FileNotFoundError:
            return []
        except Exception as exc:
            logger.warning("storage_list_failed bucket=%s prefix=%s error=%s", bucket, prefix, exc)
            raise TransportError(f"Falha ao listar arquivos: {exc}") from exc
        return [StoredObject(name=name, path=f"{folder}/{name}") for name in sorted(files)]


def get_object_storage() -> ObjectStorage:
    return ObjectStorage.from_settings()
