# vvbeneficios/importacao/header_mapper.py
"""
Localiza o cabeçalho de uma planilha de colaboradores e descobre em qual
coluna está cada campo, aceitando as várias grafias que os clientes usam
("Nome Completo", "Funcionário", "Dt. Nasc.", "Salário Base"...).
"""

import unicodedata
import re
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Sequence

from vvbeneficios.shared.utils import celula_vazia

_NAO_ALFANUMERICO = re.compile(r"[^a-z0-9]")

# Quantas linhas do topo podem conter título, logotipo, linhas em branco etc.
MAX_LINHAS_BUSCA_CABECALHO = 10
MIN_COLUNAS_RECONHECIDAS = 3

COLUMN_VARIATIONS: Dict[str, List[str]] = {
    "nome": [
        "nome",
        "nomecompleto",
        "funcionario",
        "colaborador",
        "empregado",
        "trabalhador",
        "nomecolaborador",
        "nomefuncionario",
        "nometrabalhador",
        "nomefunc",
        "nomecolab",
    ],
    "cpf": ["cpf", "documento", "doc", "cpfcnpj", "numcpf", "numerocpf", "cpfcolaborador"],
    "salario": [
        "salario",
        "salariobase",
        "vencimento",
        "vencimentos",
        "remuneracao",
        "sal",
        "renda",
        "valor",
        "pagamento",
    ],
    "nascimento": [
        "nascimento",
        "nasc",
        "dtnasc",
        "dtnascimento",
        "datanasc",
        "datanascimento",
        "datadenasc",
        "datadenascimento",
        "dtdenascimento",
        "dtnasci",
    ],
    "sexo": ["sexo", "genero", "gen", "sx", "masculinofeminino", "mf"],
}

# Rótulos usados na mensagem de erro de colunas faltantes
COLUNAS_OBRIGATORIAS = {"nome": "Nome", "cpf": "CPF", "salario": "Salário"}


@dataclass
class ColumnIndexes:
    nome: int = -1
    cpf: int = -1
    salario: int = -1
    nascimento: int = -1
    sexo: int = -1

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


def normalize_header(h: Any) -> str:
    """Minúsculas, sem acentos e sem nada que não seja letra ou número."""
    if celula_vazia(h):
        return ""
    texto = unicodedata.normalize("NFD", str(h).lower())
    texto = "".join(c for c in texto if not unicodedata.combining(c))
    return _NAO_ALFANUMERICO.sub("", texto)


def _combina(header_normalizado: str, variacoes: Sequence[str]) -> bool:
    # Cabeçalho vazio estaria "contido" em qualquer variação
    if not header_normalizado:
        return False
    return any(v in header_normalizado or header_normalizado in v for v in variacoes)


def find_header_row_index(grid: Sequence[Sequence[Any]]) -> int:
    """
    Primeira linha (entre as 10 iniciais) com pelo menos 3 colunas conhecidas.
    Sem candidata, assume a primeira linha.
    """
    for i, row in enumerate(grid[:MAX_LINHAS_BUSCA_CABECALHO]):
        if not row:
            continue

        normalizados = [normalize_header(cell) for cell in row]
        encontrados = sum(
            1
            for variacoes in COLUMN_VARIATIONS.values()
            if any(_combina(h, variacoes) for h in normalizados)
        )

        if encontrados >= MIN_COLUNAS_RECONHECIDAS:
            return i
    return 0


def map_column_indexes(headers: Sequence[Any]) -> ColumnIndexes:
    normalizados = [normalize_header(h) for h in headers]

    def _primeiro_indice(variacoes: List[str]) -> int:
        for idx, h in enumerate(normalizados):
            if _combina(h, variacoes):
                return idx
        return -1

    return ColumnIndexes(
        **{campo: _primeiro_indice(variacoes) for campo, variacoes in COLUMN_VARIATIONS.items()}
    )


def validate_required_columns(indexes: ColumnIndexes) -> List[str]:
    faltantes = []
    for campo, rotulo in COLUNAS_OBRIGATORIAS.items():
        if getattr(indexes, campo) == -1:
            faltantes.append(rotulo)
    return faltantes
