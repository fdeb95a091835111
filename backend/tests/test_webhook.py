# tests/test_webhook.py

import pytest
import requests

from vvbeneficios.config import settings
from vvbeneficios.exceptions import WebhookError
from vvbeneficios.notificacoes.webhook import (
    disparar_cobranca_massa,
    empresas_pendentes,
    enviar_notificacao,
)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text="ok"):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("sem JSON")
        return self._payload


@pytest.fixture
def chamadas(monkeypatch):
    registro = []

    def fake_post(url, json=None, timeout=None):
        registro.append({"url": url, "json": json, "timeout": timeout})
        return FakeResponse(payload={"recebido": True})

    monkeypatch.setattr("vvbeneficios.notificacoes.webhook.requests.post", fake_post)
    return registro


def test_enviar_notificacao_repassa_registro(chamadas):
    resultado = enviar_notificacao({"tipo": "lote_concluido", "lote_id": "L1"})

    assert resultado == {"recebido": True}
    assert chamadas[0]["url"] == settings.N8N_WEBHOOK_NOTIFICACAO_URL
    assert chamadas[0]["json"]["lote_id"] == "L1"
    assert chamadas[0]["timeout"] == settings.WEBHOOK_TIMEOUT


def test_resposta_de_erro_vira_webhook_error(monkeypatch):
    monkeypatch.setattr(
        "vvbeneficios.notificacoes.webhook.requests.post",
        lambda url, json=None, timeout=None: FakeResponse(status_code=500, text="falhou"),
    )
    with pytest.raises(WebhookError, match="500"):
        enviar_notificacao({"tipo": "x"})


def test_falha_de_conexao_vira_webhook_error(monkeypatch):
    def fake_post(url, json=None, timeout=None):
        raise requests.ConnectionError("sem rede")

    monkeypatch.setattr("vvbeneficios.notificacoes.webhook.requests.post", fake_post)
    with pytest.raises(WebhookError):
        enviar_notificacao({"tipo": "x"})


def test_empresas_pendentes_ignora_quem_ja_enviou(repo, empresa_obra):
    # Arrange
    empresa_id, obra_id = empresa_obra
    outra = repo.insert("empresas", [{"nome": "Beta", "status": "ativa", "emails_contato": ["dp@beta.com"]}])[0]
    repo.insert("empresas", [{"nome": "Inativa", "status": "inativa"}])
    repo.insert("lotes_mensais", [{"empresa_id": empresa_id, "obra_id": obra_id, "competencia": "10/2026"}])
    # Act
    pendentes = empresas_pendentes(repo, "10/2026")
    # Assert
    assert pendentes == [{"id": outra["id"], "nome": "Beta", "email": "dp@beta.com"}]


def test_disparar_cobranca_massa(repo, chamadas):
    # Act
    resposta = disparar_cobranca_massa(
        repo, "10/2026", [{"nome": "Beta", "email": "dp@beta.com", "id": "x"}], disparado_por="admin"
    )
    # Assert
    assert resposta["success"] is True
    assert chamadas[0]["url"] == settings.N8N_WEBHOOK_COBRANCA_URL
    assert chamadas[0]["json"] == {
        "competencia": "10/2026",
        "template_url": settings.TEMPLATE_URL,
        "empresas": [{"nome": "Beta", "email": "dp@beta.com"}],
    }
    cobranca = repo.get("historico_cobrancas", resposta["cobranca_id"])
    assert cobranca["total_empresas"] == 1
    assert cobranca["disparado_por"] == "admin"


def test_cobranca_sem_empresas(repo, chamadas):
    with pytest.raises(WebhookError):
        disparar_cobranca_massa(repo, "10/2026", [])
    assert chamadas == []
