import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header
from fastapi.responses import Response
from pydantic import BaseModel

from vvbeneficios.database import get_repository
from vvbeneficios.erros_http import para_http
from vvbeneficios.exceptions import VVBeneficiosError
from vvbeneficios.lotes.report_generator import (
    gerar_planilha_reprovados,
    gerar_relatorio_aprovados_pdf,
)
from vvbeneficios.lotes.workflow import LoteWorkflow
from vvbeneficios.repository import RosterRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lotes", tags=["Lotes"])


# --- MODELOS PYDANTIC ---
class CriarLoteRequest(BaseModel):
    empresa_id: str
    obra_id: str
    competencia: str
    observacoes: Optional[str] = None


class RetornoSeguradoraRequest(BaseModel):
    # item_id -> motivo da reprovação
    reprovados: Dict[str, str] = {}


class ItensRequest(BaseModel):
    item_ids: List[str]


class ReprovarItensRequest(ItensRequest):
    motivo: str


class ReenviarRequest(BaseModel):
    correcoes: Dict[str, Dict[str, Any]] = {}


class FaturarRequest(BaseModel):
    numero_nf: Optional[str] = None


def get_workflow(
    repo: RosterRepository = Depends(get_repository),
    x_user_id: Optional[str] = Header(None),
) -> LoteWorkflow:
    return LoteWorkflow(repo, user_id=x_user_id)


def _executar(operacao, *args, **kwargs):
    try:
        return operacao(*args, **kwargs)
    except VVBeneficiosError as e:
        logger.warning(f"{operacao.__name__} recusado: {e}")
        raise para_http(e)


# --- ENDPOINTS ---


@router.post("")
def criar_lote(request: CriarLoteRequest, wf: LoteWorkflow = Depends(get_workflow)):
    return _executar(
        wf.criar_lote,
        request.empresa_id,
        request.obra_id,
        request.competencia,
        request.observacoes,
    )


@router.get("")
def listar_lotes(
    empresa_id: Optional[str] = None,
    status: Optional[str] = None,
    wf: LoteWorkflow = Depends(get_workflow),
):
    return wf.listar_lotes(empresa_id=empresa_id, status=status)


@router.get("/{lote_id}")
def obter_lote(lote_id: str, wf: LoteWorkflow = Depends(get_workflow)):
    lote = _executar(wf.obter_lote, lote_id)
    return {**lote, "itens": wf.listar_itens(lote_id)}


@router.post("/{lote_id}/enviar")
def enviar(lote_id: str, wf: LoteWorkflow = Depends(get_workflow)):
    return _executar(wf.enviar_para_seguradora, lote_id)


@router.post("/{lote_id}/retorno")
def retorno(lote_id: str, request: RetornoSeguradoraRequest, wf: LoteWorkflow = Depends(get_workflow)):
    return _executar(wf.processar_retorno, lote_id, request.reprovados).as_dict()


@router.post("/itens/aprovar")
def aprovar_itens(request: ItensRequest, wf: LoteWorkflow = Depends(get_workflow)):
    return {"atualizados": _executar(wf.aprovar_itens, request.item_ids)}


@router.post("/itens/reprovar")
def reprovar_itens(request: ReprovarItensRequest, wf: LoteWorkflow = Depends(get_workflow)):
    return {"atualizados": _executar(wf.reprovar_itens, request.item_ids, request.motivo)}


@router.post("/{lote_id}/aprovar-todos")
def aprovar_todos(lote_id: str, wf: LoteWorkflow = Depends(get_workflow)):
    return {"atualizados": _executar(wf.aprovar_todos_nao_reprovados, lote_id)}


@router.post("/{lote_id}/concluir")
def concluir(lote_id: str, wf: LoteWorkflow = Depends(get_workflow)):
    return _executar(wf.concluir_analise, lote_id).as_dict()


@router.post("/{lote_id}/reenviar")
def reenviar(lote_id: str, request: ReenviarRequest, wf: LoteWorkflow = Depends(get_workflow)):
    return _executar(wf.reenviar_reprovados, lote_id, request.correcoes)


@router.post("/{lote_id}/finalizar")
def finalizar(lote_id: str, wf: LoteWorkflow = Depends(get_workflow)):
    return _executar(wf.finalizar_lote, lote_id)


@router.post("/{lote_id}/faturar")
def faturar(lote_id: str, request: FaturarRequest, wf: LoteWorkflow = Depends(get_workflow)):
    return _executar(wf.faturar_lote, lote_id, request.numero_nf)


@router.get("/{lote_id}/relatorio.pdf")
def relatorio_pdf(lote_id: str, wf: LoteWorkflow = Depends(get_workflow)):
    lote = _executar(wf.obter_lote, lote_id)
    empresa = wf.repo.get("empresas", lote["empresa_id"])
    pdf = gerar_relatorio_aprovados_pdf(lote, wf.listar_itens(lote_id), empresa)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="aprovados_{lote_id}.pdf"'},
    )


@router.get("/{lote_id}/reprovados.xlsx")
def reprovados_xlsx(lote_id: str, wf: LoteWorkflow = Depends(get_workflow)):
    lote = _executar(wf.obter_lote, lote_id)
    conteudo = gerar_planilha_reprovados(lote, wf.listar_itens(lote_id))
    return Response(
        content=conteudo,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="reprovados_{lote_id}.xlsx"'},
    )
