import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel

from vvbeneficios.database import get_repository
from vvbeneficios.erros_http import para_http
from vvbeneficios.exceptions import VVBeneficiosError
from vvbeneficios.importacao import service
from vvbeneficios.importacao.reader import gerar_modelo_xlsx
from vvbeneficios.importacao.row_validator import ColaboradorImport
from vvbeneficios.repository import RosterRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/importacao", tags=["Importação"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# --- MODELOS PYDANTIC ---
class ConfirmarImportacaoRequest(BaseModel):
    empresa_id: str
    obra_id: Optional[str] = None
    user_id: Optional[str] = None
    colaboradores: List[ColaboradorImport]


class LoteConcluidoRequest(BaseModel):
    empresa_id: str
    obra_id: str
    competencia: str
    user_id: Optional[str] = None
    colaboradores: List[ColaboradorImport]


# --- ENDPOINTS ---


@router.post("/preview")
async def preview(
    arquivo: UploadFile = File(...),
    empresa_id: str = Form(...),
    obra_id: Optional[str] = Form(None),
    repo: RosterRepository = Depends(get_repository),
):
    """
    Recebe a planilha do cliente e devolve cada linha validada e classificada
    (novo, atualizado, inalterado, erro), sem gravar nada.
    """
    conteudo = await arquivo.read()
    try:
        resultado = service.preview_importacao(
            repo, conteudo, arquivo.filename, empresa_id, obra_id
        )
    except VVBeneficiosError as e:
        logger.warning(f"Preview recusado para '{arquivo.filename}': {e}")
        raise para_http(e)
    return resultado.as_dict()


@router.post("/confirmar")
def confirmar(request: ConfirmarImportacaoRequest, repo: RosterRepository = Depends(get_repository)):
    try:
        resultado = service.confirmar_importacao(
            repo,
            request.colaboradores,
            request.empresa_id,
            request.obra_id,
            user_id=request.user_id,
        )
    except VVBeneficiosError as e:
        raise para_http(e)
    except Exception as e:
        logger.error(f"Erro ao confirmar importação: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Erro ao salvar colaboradores")
    return resultado.as_dict()


@router.post("/lote-concluido")
def lote_concluido(request: LoteConcluidoRequest, repo: RosterRepository = Depends(get_repository)):
    """Importação administrativa de uma lista já aprovada pela seguradora."""
    try:
        lote = service.importar_lote_concluido(
            repo,
            request.colaboradores,
            request.empresa_id,
            request.obra_id,
            request.competencia,
            user_id=request.user_id,
        )
    except VVBeneficiosError as e:
        raise para_http(e)
    except Exception as e:
        logger.error(f"Erro ao importar lote concluído: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Erro ao importar lote")
    return lote


@router.get("/modelo")
def modelo():
    return Response(
        content=gerar_modelo_xlsx(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="modelo_colaboradores.xlsx"'},
    )
