import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from vvbeneficios.database import get_repository
from vvbeneficios.erros_http import para_http
from vvbeneficios.exceptions import VVBeneficiosError
from vvbeneficios.notificacoes import webhook
from vvbeneficios.repository import RosterRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notificacoes", tags=["Notificações"])


# --- MODELOS PYDANTIC ---
class NotificacaoRequest(BaseModel):
    record: Dict[str, Any]


class EmpresaCobranca(BaseModel):
    nome: str
    email: Optional[str] = None


class CobrancaRequest(BaseModel):
    competencia: str
    empresas: List[EmpresaCobranca] = []
    disparado_por: Optional[str] = None


# --- ENDPOINTS ---


@router.post("/webhook")
def notificacao(request: NotificacaoRequest):
    try:
        resultado = webhook.enviar_notificacao(request.record)
    except VVBeneficiosError as e:
        raise para_http(e)
    return {"success": True, "result": resultado}


@router.get("/cobranca/pendentes")
def pendentes(competencia: str, repo: RosterRepository = Depends(get_repository)):
    return webhook.empresas_pendentes(repo, competencia)


@router.post("/cobranca/disparar")
def disparar(request: CobrancaRequest, repo: RosterRepository = Depends(get_repository)):
    if not request.empresas:
        raise HTTPException(status_code=400, detail="Nenhuma empresa para notificar")
    try:
        return webhook.disparar_cobranca_massa(
            repo,
            request.competencia,
            [e.model_dump() for e in request.empresas],
            disparado_por=request.disparado_por,
        )
    except VVBeneficiosError as e:
        logger.error(f"Erro ao disparar cobrança: {e}")
        raise para_http(e)
