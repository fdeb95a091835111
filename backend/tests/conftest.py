# tests/conftest.py

import io

import pytest
from openpyxl import Workbook

from vvbeneficios.repository import InMemoryRepository

# CPFs com dígitos verificadores válidos
CPF_ANA = "52998224725"
CPF_BRUNO = "11144477735"
CPF_CARLA = "12345678909"
CPF_DANIEL = "39053344705"
CNPJ_VALIDO = "11222333000181"

CABECALHO = ["Nome", "Sexo", "CPF", "Data Nascimento", "Salário"]


def criar_xlsx(linhas, cabecalho=CABECALHO, linhas_antes=()) -> bytes:
    """Monta uma planilha em memória: linhas de título opcionais, cabeçalho e dados."""
    wb = Workbook()
    ws = wb.active
    for linha in linhas_antes:
        ws.append(list(linha))
    ws.append(list(cabecalho))
    for linha in linhas:
        ws.append(list(linha))
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def criar_colaborador(cpf: str, **dados) -> dict:
    colaborador = {
        "nome": "Colaborador Teste",
        "sexo": "Masculino",
        "cpf": cpf,
        "data_nascimento": "1990-01-01",
        "salario": 2500.0,
    }
    colaborador.update(dados)
    return colaborador


@pytest.fixture
def repo():
    return InMemoryRepository()


@pytest.fixture
def empresa_obra(repo):
    empresa = repo.insert(
        "empresas",
        [{"nome": "Construtora Alfa", "cnpj": CNPJ_VALIDO, "status": "ativa", "email_contato": "rh@alfa.com.br"}],
    )[0]
    obra = repo.insert("obras", [{"nome": "Obra Centro", "empresa_id": empresa["id"]}])[0]
    return empresa["id"], obra["id"]


@pytest.fixture
def cadastro_ativo(repo, empresa_obra):
    """Três colaboradores ativos na obra."""
    empresa_id, obra_id = empresa_obra
    return repo.insert(
        "colaboradores",
        [
            {
                **criar_colaborador(cpf, nome=nome),
                "empresa_id": empresa_id,
                "obra_id": obra_id,
                "status": "ativo",
            }
            for cpf, nome in [
                (CPF_ANA, "ANA SOUZA"),
                (CPF_BRUNO, "BRUNO LIMA"),
                (CPF_CARLA, "CARLA DIAS"),
            ]
        ],
    )
