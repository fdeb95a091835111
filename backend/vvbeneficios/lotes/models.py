# vvbeneficios/lotes/models.py
"""Status e estruturas do ciclo de vida de um lote mensal."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List


class LoteStatus(Enum):
    """Status do lote mensal enviado à seguradora."""

    RASCUNHO = "rascunho"
    AGUARDANDO_PROCESSAMENTO = "aguardando_processamento"
    EM_ANALISE_SEGURADORA = "em_analise_seguradora"
    COM_PENDENCIA = "com_pendencia"
    AGUARDANDO_CORRECAO = "aguardando_correcao"
    AGUARDANDO_REANALISE = "aguardando_reanalise"
    EM_REANALISE = "em_reanalise"
    AGUARDANDO_FINALIZACAO = "aguardando_finalizacao"
    CONCLUIDO = "concluido"
    FATURADO = "faturado"


class StatusSeguradora(Enum):
    """Status de cada vida dentro do lote."""

    PENDENTE = "pendente"
    ENVIADO = "enviado"
    APROVADO = "aprovado"
    REPROVADO = "reprovado"
    REENVIADO = "reenviado"


# De onde cada operação pode partir
ORIGENS_PERMITIDAS: Dict[str, List[LoteStatus]] = {
    "enviar": [
        LoteStatus.RASCUNHO,
        LoteStatus.AGUARDANDO_PROCESSAMENTO,
        LoteStatus.AGUARDANDO_REANALISE,
    ],
    "analisar": [LoteStatus.EM_ANALISE_SEGURADORA, LoteStatus.EM_REANALISE],
    "reenviar": [LoteStatus.COM_PENDENCIA, LoteStatus.AGUARDANDO_CORRECAO],
    "finalizar": [LoteStatus.AGUARDANDO_FINALIZACAO],
    "faturar": [LoteStatus.CONCLUIDO],
}

CAMPOS_CORRIGIVEIS = ("nome", "cpf", "sexo", "data_nascimento", "salario")


@dataclass
class TotaisLote:
    total_colaboradores: int = 0
    total_aprovados: int = 0
    total_reprovados: int = 0
    valor_total: float = 0.0

    def as_dict(self) -> Dict:
        return {
            "total_colaboradores": self.total_colaboradores,
            "total_aprovados": self.total_aprovados,
            "total_reprovados": self.total_reprovados,
            "valor_total": self.valor_total,
        }


@dataclass
class ResultadoAnalise:
    """Resumo devolvido após registrar o retorno da seguradora."""

    lote_id: str
    status: LoteStatus
    aprovados: int = 0
    reprovados: int = 0
    itens_reprovados: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict:
        return {
            "lote_id": self.lote_id,
            "status": self.status.value,
            "aprovados": self.aprovados,
            "reprovados": self.reprovados,
            "itens_reprovados": self.itens_reprovados,
        }
