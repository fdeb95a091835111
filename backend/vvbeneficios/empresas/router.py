import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel

from vvbeneficios.database import get_repository
from vvbeneficios.empresas import crm
from vvbeneficios.erros_http import para_http
from vvbeneficios.exceptions import VVBeneficiosError
from vvbeneficios.repository import RosterRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/empresas", tags=["Empresas"])


# --- MODELOS PYDANTIC ---
class EmpresaRequest(BaseModel):
    nome: str
    cnpj: str
    email_contato: Optional[str] = None
    telefone_contato: Optional[str] = None
    nome_responsavel: Optional[str] = None
    emails_contato: Optional[List[str]] = None
    telefones_contato: Optional[List[str]] = None
    endereco: Optional[str] = None


class MoverEmpresaRequest(BaseModel):
    status: str


# --- ENDPOINTS ---


@router.post("")
def cadastrar(
    request: EmpresaRequest,
    repo: RosterRepository = Depends(get_repository),
    x_user_id: Optional[str] = Header(None),
):
    try:
        return crm.cadastrar_empresa(repo, request.model_dump(), user_id=x_user_id)
    except VVBeneficiosError as e:
        logger.warning(f"Cadastro de empresa recusado: {e}")
        raise para_http(e)


@router.get("/kanban")
def kanban(repo: RosterRepository = Depends(get_repository)):
    """
    Empresas agrupadas pela etapa do funil, com os rótulos de cada coluna.
    """
    empresas = repo.select(crm.TABELA_EMPRESAS)
    return {
        "labels": crm.CRM_STATUS_LABELS,
        "colunas": crm.agrupar_por_status(empresas),
        "inativas": crm.listar_inativas(empresas),
    }


@router.patch("/{empresa_id}/status")
def mover(
    empresa_id: str,
    request: MoverEmpresaRequest,
    repo: RosterRepository = Depends(get_repository),
    x_user_id: Optional[str] = Header(None),
):
    try:
        return crm.mover_empresa(repo, empresa_id, request.status, user_id=x_user_id)
    except VVBeneficiosError as e:
        raise para_http(e)
