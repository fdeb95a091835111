# vvbeneficios/historico.py
from typing import Any, Dict, Optional

from config.logging_config import log
from vvbeneficios.repository import RosterRepository

TABELA_HISTORICO = "historico_logs"


def registrar_historico(
    repo: RosterRepository,
    acao: str,
    empresa_id: Optional[str] = None,
    lote_id: Optional[str] = None,
    colaborador_id: Optional[str] = None,
    user_id: Optional[str] = None,
    detalhes: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Trilha de auditoria exibida no histórico do cliente e do admin."""
    log.debug(f"Histórico: {acao} (empresa={empresa_id}, lote={lote_id})")
    registro = repo.insert(
        TABELA_HISTORICO,
        [
            {
                "acao": acao,
                "empresa_id": empresa_id,
                "lote_id": lote_id,
                "colaborador_id": colaborador_id,
                "user_id": user_id,
                "detalhes": detalhes or {},
            }
        ],
    )
    return registro[0] if registro else {}
