# tests/test_header_mapper.py

from vvbeneficios.importacao.header_mapper import (
    find_header_row_index,
    map_column_indexes,
    normalize_header,
    validate_required_columns,
)


def test_normalize_header_remove_acentos_e_pontuacao():
    assert normalize_header("Dt. Nasc.") == "dtnasc"
    assert normalize_header("Salário Base") == "salariobase"
    assert normalize_header(None) == ""


def test_cabecalho_abaixo_do_titulo():
    # Arrange
    grid = [
        ["RELAÇÃO DE FUNCIONÁRIOS - OBRA CENTRO", None, None],
        [None, None, None],
        ["Nome Completo", "CPF", "Salário"],
        ["ANA SOUZA", "529.982.247-25", "2500"],
    ]
    # Act / Assert
    assert find_header_row_index(grid) == 2


def test_sem_cabecalho_reconhecivel_assume_primeira_linha():
    grid = [["a", "b"], ["c", "d"]]
    assert find_header_row_index(grid) == 0


def test_mapeamento_aceita_variacoes():
    # Arrange
    headers = ["Funcionário", "Gênero", "Documento", "Dt. Nascimento", "Remuneração"]
    # Act
    indexes = map_column_indexes(headers)
    # Assert
    assert indexes.as_dict() == {
        "nome": 0,
        "cpf": 2,
        "salario": 4,
        "nascimento": 3,
        "sexo": 1,
    }
    assert validate_required_columns(indexes) == []


def test_colunas_obrigatorias_faltantes():
    indexes = map_column_indexes(["Nome", "Sexo", "Data Nascimento"])
    assert validate_required_columns(indexes) == ["CPF", "Salário"]


def test_celula_vazia_nao_casa_com_nenhuma_coluna():
    indexes = map_column_indexes(["", None, "Nome", "CPF", "Salário"])
    assert indexes.nome == 2
    assert indexes.sexo == -1
