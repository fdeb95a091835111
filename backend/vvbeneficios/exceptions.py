# backend/vvbeneficios/exceptions.py
"""Erros de domínio. Os routers convertem cada um no HTTPException adequado."""

from typing import List, Optional


class VVBeneficiosError(Exception):
    """Base de todos os erros de negócio do backend."""


class ImportacaoError(VVBeneficiosError):
    """Arquivo ilegível, vazio, grande demais ou sem linhas válidas."""


class ColunasObrigatoriasError(ImportacaoError):
    def __init__(self, faltantes: List[str]):
        self.faltantes = faltantes
        super().__init__(
            f"Colunas obrigatórias não encontradas: {', '.join(faltantes)}."
        )


class RegistroNaoEncontradoError(VVBeneficiosError):
    def __init__(self, tabela: str, registro_id: Optional[str]):
        self.tabela = tabela
        self.registro_id = registro_id
        super().__init__(f"Registro '{registro_id}' não encontrado em {tabela}.")


class TransicaoInvalidaError(VVBeneficiosError):
    """Operação não permitida no status atual do lote."""


class WebhookError(VVBeneficiosError):
    """Falha ao repassar dados para o n8n."""


class DadosInvalidosError(VVBeneficiosError):
    """Entrada recusada: motivo em branco, CPF corrigido inválido, status desconhecido."""
