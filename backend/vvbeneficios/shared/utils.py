from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Iterator, List, Sequence

import pandas as pd


def safe_decimal(value: Any) -> Decimal:
    """Converte qualquer entrada (planilha suja) para Decimal com 2 casas.
    Usado nos totais de lote, onde float acumularia erro."""
    if value is None:
        return Decimal("0.00")
    if isinstance(value, (float, int)):
        if isinstance(value, float) and pd.isna(value):
            return Decimal("0.00")
        return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if isinstance(value, str):
        cleaned = value.strip().replace(",", ".")
        try:
            return Decimal(cleaned).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        except InvalidOperation:
            return Decimal("0.00")
    return Decimal("0.00")


def formatar_valor(valor: Any) -> str:
    """Formata valor monetário no padrão brasileiro (1.234,56)."""
    if valor is None or pd.isna(valor):
        return "0,00"
    return f"{float(valor):,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


def agora_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def em_blocos(itens: Sequence[Any], tamanho: int) -> Iterator[List[Any]]:
    """Divide a lista em blocos para não estourar o limite de payload do banco."""
    if tamanho <= 0:
        raise ValueError("tamanho do bloco deve ser positivo")
    for inicio in range(0, len(itens), tamanho):
        yield list(itens[inicio : inicio + tamanho])


def celula_vazia(valor: Any) -> bool:
    if valor is None:
        return True
    if isinstance(valor, float) and pd.isna(valor):
        return True
    return str(valor).strip() == ""
