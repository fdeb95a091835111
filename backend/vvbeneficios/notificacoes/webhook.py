# vvbeneficios/notificacoes/webhook.py
"""
Repasse de notificações e cobranças para os fluxos do n8n, que cuidam do
envio de e-mails aos clientes.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

import requests

from config.logging_config import log
from vvbeneficios.config import settings
from vvbeneficios.exceptions import WebhookError
from vvbeneficios.repository import RosterRepository

TABELA_EMPRESAS = "empresas"
TABELA_LOTES = "lotes_mensais"
TABELA_COBRANCAS = "historico_cobrancas"


def _post(url: str, payload: Any) -> requests.Response:
    try:
        response = requests.post(url, json=payload, timeout=settings.WEBHOOK_TIMEOUT)
    except requests.RequestException as e:
        log.error(f"Falha de conexão com o n8n ({url}): {e}")
        raise WebhookError(f"Erro ao contatar o n8n: {e}") from e

    if not response.ok:
        log.error(f"n8n respondeu {response.status_code}: {response.text}")
        raise WebhookError(f"Webhook retornou status {response.status_code}: {response.text}")
    return response


def enviar_notificacao(record: Mapping[str, Any]) -> Any:
    """Encaminha o registro de notificação como veio do gatilho do banco."""
    log.info(f"Notificação recebida: {record.get('tipo', '-')}")
    response = _post(settings.N8N_WEBHOOK_NOTIFICACAO_URL, dict(record))
    try:
        return response.json()
    except ValueError:
        return {"resposta": response.text}


def _email_principal(empresa: Mapping[str, Any]) -> Optional[str]:
    if empresa.get("email_contato"):
        return empresa["email_contato"]
    emails = empresa.get("emails_contato") or []
    return emails[0] if emails else None


def empresas_pendentes(repo: RosterRepository, competencia: str) -> List[Dict[str, Any]]:
    """Empresas ativas que ainda não enviaram a lista da competência."""
    ativas = repo.select(TABELA_EMPRESAS, {"status": "ativa"}, order_by="nome")
    com_lote = {l["empresa_id"] for l in repo.select(TABELA_LOTES, {"competencia": competencia})}
    return [
        {"id": e["id"], "nome": e["nome"], "email": _email_principal(e)}
        for e in ativas
        if e["id"] not in com_lote
    ]


def disparar_cobranca_massa(
    repo: RosterRepository,
    competencia: str,
    empresas: Sequence[Mapping[str, Any]],
    disparado_por: Optional[str] = None,
) -> Dict[str, Any]:
    if not empresas:
        raise WebhookError("Nenhuma empresa para notificar")

    payload = {
        "competencia": competencia,
        "template_url": settings.TEMPLATE_URL,
        "empresas": [{"nome": e.get("nome"), "email": e.get("email")} for e in empresas],
    }

    log.info(f"Enviando cobrança de {competencia} para {len(empresas)} empresas")
    _post(settings.N8N_WEBHOOK_COBRANCA_URL, payload)

    registro = repo.insert(
        TABELA_COBRANCAS,
        [
            {
                "competencia": competencia,
                "empresas_notificadas": payload["empresas"],
                "total_empresas": len(empresas),
                "disparado_por": disparado_por,
            }
        ],
    )[0]
    log.success(f"Cobrança enviada para {len(empresas)} empresas")
    return {
        "success": True,
        "message": f"Cobrança enviada para {len(empresas)} empresas",
        "cobranca_id": registro["id"],
    }
