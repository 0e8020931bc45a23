import logging
import re
from dataclasses import dataclass

import requests
from django.conf import settings

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

COUNTRY_CODE = "55"


def format_whatsapp_number(numero: str) -> str:
    digits = re.sub(r"\D", "", numero or "")
    return digits if digits.startswith(COUNTRY_CODE) else f"{COUNTRY_CODE}{digits}"


@dataclass
class UpstreamResponse:
    ok: bool
    status_code: int
    payload: object


def _credentials() -> tuple[str, str]:
    base_url = (getattr(settings, "UAZAPI_BASE_URL", "") or "").rstrip("/")
    token = getattr(settings, "UAZAPI_TOKEN", "") or ""
    if not base_url or not token:
        raise ConfigurationError("Configuração de WhatsApp não encontrada")
    return base_url, token


def ensure_configured() -> None:
    _credentials()


def send_text_message(numero: str, mensagem: str) -> UpstreamResponse:
    base_url, token = _credentials()
    number = format_whatsapp_number(numero)
    logger.info("whatsapp_send number=***%s", number[-4:])

    response = requests.post(
        f"{base_url}/send/text",
        headers={"token": token, "Content-Type": "application/json"},
        json={"number": number, "text": mensagem},
        timeout=settings.UAZAPI_TIMEOUT,
    )
    try:
        payload = response.json()
    except ValueError:
        payload = response.text

    if not response.ok:
        logger.warning("whatsapp_send_failed status=%s", response.status_code)
    return UpstreamResponse(ok=response.ok, status_code=response.status_code, payload=payload)
