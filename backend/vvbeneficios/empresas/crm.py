# vvbeneficios/empresas/crm.py
"""
Funil comercial das empresas clientes, do primeiro contato até a empresa
ativa enviando listas mensais.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from config.logging_config import log
from vvbeneficios.exceptions import DadosInvalidosError, RegistroNaoEncontradoError
from vvbeneficios.historico import registrar_historico
from vvbeneficios.repository import RosterRepository
from vvbeneficios.shared.utils import agora_iso
from vvbeneficios.shared.validators import format_telefone, only_digits, validate_cnpj

TABELA_EMPRESAS = "empresas"


class EmpresaStatus(Enum):
    SEM_RETORNO = "sem_retorno"
    TRATATIVA = "tratativa"
    CONTRATO_ASSINADO = "contrato_assinado"
    APOLICES_EMITIDA = "apolices_emitida"
    ACOLHIMENTO = "acolhimento"
    ATIVA = "ativa"
    INATIVA = "inativa"
    CANCELADA = "cancelada"


# Colunas do kanban, na ordem do funil
ETAPAS_FUNIL = [
    EmpresaStatus.SEM_RETORNO,
    EmpresaStatus.TRATATIVA,
    EmpresaStatus.CONTRATO_ASSINADO,
    EmpresaStatus.APOLICES_EMITIDA,
    EmpresaStatus.ACOLHIMENTO,
    EmpresaStatus.ATIVA,
]

CRM_STATUS_LABELS: Dict[str, str] = {
    "sem_retorno": "Sem Retorno",
    "tratativa": "Em Tratativa",
    "contrato_assinado": "Contrato Assinado",
    "apolices_emitida": "Apólices Emitida",
    "acolhimento": "Acolhimento",
    "ativa": "Empresa Ativa",
    "inativa": "Inativa",
    "cancelada": "Cancelada",
}

CAMPOS_EMPRESA = (
    "nome",
    "cnpj",
    "email_contato",
    "telefone_contato",
    "nome_responsavel",
    "emails_contato",
    "telefones_contato",
    "endereco",
)


def _status_valido(status: str) -> EmpresaStatus:
    try:
        return EmpresaStatus(status)
    except ValueError:
        raise DadosInvalidosError(f"Status de CRM desconhecido: '{status}'")


def cadastrar_empresa(
    repo: RosterRepository, dados: Mapping[str, Any], user_id: Optional[str] = None
) -> Dict[str, Any]:
    nome = (dados.get("nome") or "").strip()
    if not nome:
        raise DadosInvalidosError("Nome da empresa é obrigatório")

    cnpj = only_digits(dados.get("cnpj"))
    if not validate_cnpj(cnpj):
        raise DadosInvalidosError(f"CNPJ inválido: {dados.get('cnpj')}")

    if repo.select(TABELA_EMPRESAS, {"cnpj": cnpj}, limit=1):
        raise DadosInvalidosError(f"Já existe empresa cadastrada com o CNPJ {cnpj}")

    registro = {campo: dados.get(campo) for campo in CAMPOS_EMPRESA if dados.get(campo) is not None}
    registro.update(
        {"nome": nome, "cnpj": cnpj, "status": EmpresaStatus.SEM_RETORNO.value, "implantada": False}
    )
    if registro.get("telefone_contato"):
        registro["telefone_contato"] = format_telefone(registro["telefone_contato"])
    empresa = repo.insert(TABELA_EMPRESAS, [registro])[0]

    registrar_historico(
        repo, "empresa_cadastrada", empresa_id=empresa["id"], user_id=user_id, detalhes={"nome": nome}
    )
    log.info(f"Empresa cadastrada no CRM: {nome} ({cnpj})")
    return empresa


def mover_empresa(
    repo: RosterRepository, empresa_id: str, status: str, user_id: Optional[str] = None
) -> Dict[str, Any]:
    novo_status = _status_valido(status)

    empresa = repo.get(TABELA_EMPRESAS, empresa_id)
    if not empresa:
        raise RegistroNaoEncontradoError(TABELA_EMPRESAS, empresa_id)

    anterior = empresa.get("status")
    empresa = repo.update(
        TABELA_EMPRESAS,
        {"status": novo_status.value, "updated_at": agora_iso()},
        ids=[empresa_id],
    )[0]

    registrar_historico(
        repo,
        "empresa_status_alterado",
        empresa_id=empresa_id,
        user_id=user_id,
        detalhes={"de": anterior, "para": novo_status.value},
    )
    log.info(f"Empresa {empresa['nome']}: {anterior} -> {novo_status.value}")
    return empresa


def agrupar_por_status(empresas: Iterable[Mapping[str, Any]]) -> Dict[str, List[Mapping[str, Any]]]:
    """Colunas do kanban; inativas e canceladas ficam fora do funil."""
    colunas: Dict[str, List[Mapping[str, Any]]] = {etapa.value: [] for etapa in ETAPAS_FUNIL}
    for empresa in empresas:
        status = empresa.get("status")
        if status in colunas:
            colunas[status].append(empresa)

    for status in colunas:
        colunas[status] = sorted(colunas[status], key=lambda e: (e.get("nome") or "").upper())
    return colunas


def listar_inativas(empresas: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    fora_do_funil = {EmpresaStatus.INATIVA.value, EmpresaStatus.CANCELADA.value}
    return sorted(
        (e for e in empresas if e.get("status") in fora_do_funil),
        key=lambda e: (e.get("nome") or "").upper(),
    )
