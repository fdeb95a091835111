# vvbeneficios/importacao/reader.py
import io
from pathlib import Path
from typing import Any, List

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill

from config.logging_config import log
from vvbeneficios.config import settings
from vvbeneficios.exceptions import ImportacaoError

EXTENSOES_EXCEL = {".xlsx", ".xlsm"}
CABECALHO_MODELO = ["Nome", "Sexo", "CPF", "Data Nascimento", "Salário"]
LARGURAS_MODELO = [35, 15, 18, 20, 15]


def _limpar(valor: Any) -> Any:
    if valor is None:
        return None
    if isinstance(valor, float) and pd.isna(valor):
        return None
    if valor is pd.NaT:
        return None
    return valor


def ler_planilha(conteudo: bytes, filename: str) -> List[List[Any]]:
    """
    Lê a primeira aba (ou o CSV) sem assumir onde está o cabeçalho.
    Devolve uma grade de células brutas; a detecção do cabeçalho é feita depois.
    """
    if len(conteudo) > settings.MAX_UPLOAD_BYTES:
        limite_mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise ImportacaoError(f"Arquivo muito grande. Máximo: {limite_mb} MB")

    extensao = Path(filename or "").suffix.lower()

    try:
        if extensao in EXTENSOES_EXCEL:
            df = pd.read_excel(
                io.BytesIO(conteudo), sheet_name=0, header=None, dtype=object, engine="openpyxl"
            )
        elif extensao == ".csv":
            df = pd.read_csv(
                io.BytesIO(conteudo),
                header=None,
                dtype=str,
                sep=None,
                engine="python",
                encoding="utf-8-sig",
                keep_default_na=False,
            )
        else:
            raise ImportacaoError(f"Formato não suportado: '{extensao or filename}'. Use .xlsx ou .csv")
    except ImportacaoError:
        raise
    except Exception as e:
        log.error(f"Falha ao ler a planilha '{filename}': {e}")
        raise ImportacaoError("Erro ao processar arquivo") from e

    grid = [[_limpar(v) for v in row] for row in df.itertuples(index=False, name=None)]

    if len(grid) < 2:
        raise ImportacaoError("Arquivo vazio ou sem dados")

    log.info(f"Planilha '{filename}' lida: {len(grid)} linhas, {df.shape[1]} colunas.")
    return grid


def gerar_modelo_xlsx() -> bytes:
    """Planilha modelo que o cliente baixa para preencher."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Colaboradores"
    ws.append(CABECALHO_MODELO)

    for idx, largura in enumerate(LARGURAS_MODELO, start=1):
        ws.column_dimensions[ws.cell(row=1, column=idx).column_letter].width = largura

    for cell in ws[1]:
        cell.fill = PatternFill(fill_type="solid", fgColor="FFC0504D")
        cell.font = Font(bold=True, color="FFFFFFFF")
        cell.alignment = Alignment(horizontal="center", vertical="center")

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
