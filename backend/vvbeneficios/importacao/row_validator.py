# vvbeneficios/importacao/row_validator.py
# Validação linha a linha da planilha de colaboradores. Nenhuma linha ruim
# interrompe a importação: os problemas vão para a coluna 'erros' e a linha
# fica com status 'erro' para o cliente corrigir.

import numbers
import re
from datetime import date, datetime
from typing import Any, List, Optional, Sequence

import pandas as pd
from pydantic import BaseModel, field_validator

from config.logging_config import log
from vvbeneficios.importacao.header_mapper import ColumnIndexes
from vvbeneficios.shared.utils import celula_vazia
from vvbeneficios.shared.validators import only_digits, validate_cpf

# Pisos salariais da convenção (ordem crescente)
CLASSIFICACOES_SALARIO = [
    ("Ajudante Comum", 1454.20),
    ("Ajudante Prático/Meio-Oficial", 1476.20),
    ("Oficial", 2378.34),
    ("Op. Qualificado I", 2637.80),
    ("Op. Qualificado II", 3262.60),
    ("Op. Qualificado III", 4037.00),
]

ANO_MINIMO = 1900
ANO_MAXIMO = 2100
EXCEL_EPOCH = pd.Timestamp("1899-12-30")
# Serial de 31/12/2100; acima disso o texto não é uma data do Excel
SERIAL_MAXIMO = 73415

COLUNAS_RESULTADO = [
    "linha",
    "nome",
    "sexo",
    "cpf",
    "data_nascimento",
    "salario",
    "classificacao_salario",
    "status",
    "erros",
    "alteracoes",
]

_DDMMYYYY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})$")
_YYYYMMDD = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


class ColaboradorImport(BaseModel):
    """Colaborador já normalizado, pronto para gravar no cadastro."""

    nome: str
    sexo: str
    cpf: str
    data_nascimento: str
    salario: float
    classificacao_salario: Optional[str] = None

    @field_validator("cpf")
    @classmethod
    def cpf_valido(cls, v: str) -> str:
        digitos = only_digits(v)
        if not validate_cpf(digitos):
            raise ValueError("CPF inválido")
        return digitos

    @field_validator("salario")
    @classmethod
    def salario_positivo(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Salário inválido")
        return v


def calcular_classificacao_salario(salario: float) -> str:
    classificacao = CLASSIFICACOES_SALARIO[0][0]
    for rotulo, minimo in CLASSIFICACOES_SALARIO:
        if salario >= minimo:
            classificacao = rotulo
    return classificacao


def normalizar_sexo(valor: Any) -> Optional[str]:
    if celula_vazia(valor):
        return None
    texto = str(valor).strip().lower()
    if texto in ("masculino", "masc", "m"):
        return "Masculino"
    if texto in ("feminino", "fem", "f", "femi"):
        return "Feminino"
    if texto in ("outro", "o"):
        return "Outro"
    return None


def normalizar_salario(valor: Any) -> Optional[float]:
    # Zero e vazio contam como salário não informado
    if celula_vazia(valor) or valor == 0:
        return None

    if isinstance(valor, numbers.Number) and not isinstance(valor, bool):
        return float(valor)

    texto = re.sub(r"\s", "", str(valor).replace("R$", ""))

    if "," in texto:
        # Formato brasileiro: 3.500,00 ou 3500,00
        texto = texto.replace(".", "").replace(",", ".")
    elif "." in texto:
        partes = texto.split(".")
        # 3.500 é milhar brasileiro; 3500.00 é decimal
        if len(partes) == 2 and len(partes[1]) == 3:
            texto = texto.replace(".", "")

    try:
        return float(texto)
    except ValueError:
        return None


def _data_iso(ano: int, mes: int, dia: int) -> Optional[str]:
    if not (ANO_MINIMO <= ano <= ANO_MAXIMO):
        return None
    try:
        return date(ano, mes, dia).isoformat()
    except ValueError:
        return None


def normalizar_data(valor: Any) -> Optional[str]:
    """Devolve a data em ISO (YYYY-MM-DD) ou None se não for uma data plausível."""
    if celula_vazia(valor):
        return None

    if isinstance(valor, (datetime, date)):
        return _data_iso(valor.year, valor.month, valor.day)

    texto = str(valor).strip()

    match = _DDMMYYYY.match(texto)
    if match:
        dia, mes, ano_txt = match.groups()
        if len(ano_txt) == 3:
            return None
        if len(ano_txt) == 2:
            ano_txt = f"19{ano_txt}" if int(ano_txt) > 50 else f"20{ano_txt}"
        return _data_iso(int(ano_txt), int(mes), int(dia))

    match = _YYYYMMDD.match(texto)
    if match:
        ano, mes, dia = (int(p) for p in match.groups())
        return _data_iso(ano, mes, dia)

    # Serial do Excel (dias desde 30/12/1899)
    try:
        serial = float(texto)
    except ValueError:
        return None
    if serial <= 0 or serial > SERIAL_MAXIMO:
        return None
    convertida = EXCEL_EPOCH + pd.Timedelta(days=int(serial))
    return _data_iso(convertida.year, convertida.month, convertida.day)


def _celula(row: Sequence[Any], idx: int) -> Any:
    if idx < 0 or idx >= len(row):
        return None
    return row[idx]


def validar_linhas(
    grid: Sequence[Sequence[Any]], header_row: int, indexes: ColumnIndexes
) -> pd.DataFrame:
    """
    Valida cada linha abaixo do cabeçalho. Linhas totalmente vazias são
    ignoradas; a numeração em 'linha' é a mesma que o cliente vê no Excel.
    """
    log.info("Iniciando validação das linhas da planilha...")

    cpfs_no_arquivo = set()
    validadas = []

    for i in range(header_row + 1, len(grid)):
        row = grid[i]
        if not row or all(celula_vazia(cell) for cell in row):
            continue

        erros: List[str] = []

        nome_bruto = _celula(row, indexes.nome)
        nome = "" if celula_vazia(nome_bruto) else str(nome_bruto).strip()
        if not nome:
            erros.append("Nome obrigatório")

        sexo = normalizar_sexo(_celula(row, indexes.sexo))
        if not sexo:
            erros.append("Sexo inválido")

        cpf = only_digits(_celula(row, indexes.cpf))
        if len(cpf) != 11:
            erros.append("CPF deve ter 11 dígitos")
        elif not validate_cpf(cpf):
            erros.append("CPF inválido")
        elif cpf in cpfs_no_arquivo:
            erros.append("CPF duplicado")
        else:
            cpfs_no_arquivo.add(cpf)

        data_nascimento = normalizar_data(_celula(row, indexes.nascimento))
        if not data_nascimento:
            erros.append("Data inválida")

        salario = normalizar_salario(_celula(row, indexes.salario))
        if salario is None or salario < 0:
            erros.append("Salário inválido")

        validadas.append(
            {
                "linha": i + 1,
                "nome": nome,
                "sexo": sexo or "",
                "cpf": cpf,
                "data_nascimento": data_nascimento or "",
                "salario": salario if salario is not None else 0.0,
                "classificacao_salario": (
                    calcular_classificacao_salario(salario) if salario else ""
                ),
                "status": "erro" if erros else "valido",
                "erros": erros,
                "alteracoes": [],
            }
        )

    if not validadas:
        log.warning("Nenhuma linha de dados encontrada abaixo do cabeçalho.")
        return pd.DataFrame(columns=COLUNAS_RESULTADO)

    df = pd.DataFrame(validadas, columns=COLUNAS_RESULTADO)
    total_erros = int((df["status"] == "erro").sum())
    log.success(
        f"Validação concluída: {len(df)} linhas, {total_erros} com erro."
    )
    return df
