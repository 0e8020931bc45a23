"""Tests for the WhatsApp sender function."""

from unittest import mock

import pytest
from rest_framework.test import APIClient

from financeiro.whatsapp import format_whatsapp_number

URL = "/api/functions/whatsapp-send-message/"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("(11) 99999-8888", "5511999998888"),
        ("5511999998888", "5511999998888"),
        ("+55 11 99999-8888", "5511999998888"),
    ],
)
def test_format_whatsapp_number(raw, expected):
    assert format_whatsapp_number(raw) == expected


def upstream(status_code, payload):
    response = mock.Mock()
    response.ok = 200 <= status_code < 300
    response.status_code = status_code
    response.json.return_value = payload
    return response


@pytest.fixture
def configured(settings):
    settings.UAZAPI_BASE_URL = "https://api.uazapi.example/"
    settings.UAZAPI_TOKEN = "token-secreto"
    return settings


@pytest.mark.django_db
class TestWhatsAppSendView:
    def setup_method(self):
        self.client = APIClient()

    def test_missing_credentials(self, settings):
        settings.UAZAPI_BASE_URL = ""
        settings.UAZAPI_TOKEN = ""

        response = self.client.post(URL, {"numero": "11999998888", "mensagem": "Olá"}, format="json")

        assert response.status_code == 500
        assert response.json() == {"error": "Configuração de WhatsApp não encontrada"}
        assert response["Access-Control-Allow-Origin"] == "*"

    def test_missing_fields(self, configured):
        response = self.client.post(URL, {"numero": "11999998888"}, format="json")

        assert response.status_code == 400
        assert response.json() == {"error": "Número e mensagem são obrigatórios"}

    def test_success(self, configured):
        with mock.patch("financeiro.whatsapp.requests.post", return_value=upstream(200, {"id": "abc"})) as post:
            response = self.client.post(
                URL, {"numero": "(11) 99999-8888", "mensagem": "Culto às 19h"}, format="json"
            )

        assert response.status_code == 200
        assert response.json() == {"success": True, "result": {"id": "abc"}}
        post.assert_called_once()
        args, kwargs = post.call_args
        assert args[0] == "https://api.uazapi.example/send/text"
        assert kwargs["headers"]["token"] == "token-secreto"
        assert kwargs["json"] == {"number": "5511999998888", "text": "Culto às 19h"}

    def test_upstream_error_is_passed_through(self, configured):
        with mock.patch("financeiro.whatsapp.requests.post", return_value=upstream(401, {"message": "invalid"})):
            response = self.client.post(URL, {"numero": "11999998888", "mensagem": "Oi"}, format="json")

        assert response.status_code == 401
        assert response.json() == {"error": "Falha ao enviar mensagem", "details": {"message": "invalid"}}

    def test_transport_exception(self, configured):
        with mock.patch("financeiro.whatsapp.requests.post", side_effect=ConnectionError("refused")):
            response = self.client.post(URL, {"numero": "11999998888", "mensagem": "Oi"}, format="json")

        assert response.status_code == 500
        assert response.json() == {"error": "refused"}

    def test_preflight(self):
        response = self.client.options(URL)

        assert response.status_code == 200
        assert response.content == b"ok"
        assert response["Access-Control-Allow-Origin"] == "*"

    def test_malformed_json(self, configured):
        with mock.patch("financeiro.whatsapp.requests.post") as post:
            response = self.client.post(URL, data="{bad", content_type="application/json")

        assert response.status_code == 500
        assert response.json()["error"].startswith("JSON parse error")
        assert response["Access-Control-Allow-Origin"] == "*"
        post.assert_not_called()
