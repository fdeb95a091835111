# tests/test_importacao_service.py

import io

import pytest
from openpyxl import load_workbook

from conftest import CPF_ANA, CPF_BRUNO, CPF_CARLA, CPF_DANIEL, criar_colaborador, criar_xlsx
from vvbeneficios.config import settings
from vvbeneficios.exceptions import ColunasObrigatoriasError, ImportacaoError
from vvbeneficios.importacao.reader import CABECALHO_MODELO, gerar_modelo_xlsx, ler_planilha
from vvbeneficios.importacao.service import (
    confirmar_importacao,
    importar_lote_concluido,
    preview_importacao,
)


def ativos(repo, empresa_id, obra_id):
    return repo.select(
        "colaboradores", {"empresa_id": empresa_id, "obra_id": obra_id, "status": "ativo"}
    )


def test_preview_classifica_contra_cadastro(repo, empresa_obra, cadastro_ativo):
    # Arrange
    empresa_id, obra_id = empresa_obra
    conteudo = criar_xlsx(
        [
            ["ANA SOUZA", "Masculino", "529.982.247-25", "01/01/1990", "2.500,00"],
            ["BRUNO LIMA", "M", CPF_BRUNO, "01/01/1990", "4.100,00"],
            ["DANIEL ROCHA", "M", CPF_DANIEL, "10/10/1995", "1.600,00"],
            ["SEM CPF", "M", "", "10/10/1995", "1.600,00"],
        ],
        linhas_antes=[["Lista de colaboradores - Obra Centro"], ["Competência 10/2026"]],
    )
    # Act
    preview = preview_importacao(repo, conteudo, "lista.xlsx", empresa_id, obra_id)
    # Assert
    assert preview.header_row == 2
    assert preview.linhas["status"].tolist() == ["inalterado", "atualizado", "novo", "erro"]
    assert preview.resumo() == {
        "total": 4,
        "novos": 1,
        "atualizados": 1,
        "inalterados": 1,
        "erros": 1,
        # Carla não veio na planilha
        "desligamentos_previstos": 1,
    }
    # Nada é gravado na pré-visualização
    assert len(ativos(repo, empresa_id, obra_id)) == 3


def test_preview_sem_colunas_obrigatorias(repo, empresa_obra):
    empresa_id, obra_id = empresa_obra
    conteudo = criar_xlsx(
        [["ANA", "Feminino", "01/01/1990"]], cabecalho=["Nome", "Sexo", "Data Nascimento"]
    )
    with pytest.raises(ColunasObrigatoriasError) as exc:
        preview_importacao(repo, conteudo, "lista.xlsx", empresa_id, obra_id)
    assert exc.value.faltantes == ["CPF", "Salário"]


def test_ler_planilha_csv_com_ponto_e_virgula():
    conteudo = (
        "Nome;Sexo;CPF;Data Nascimento;Salário\n"
        "ANA SOUZA;F;529.982.247-25;01/01/1990;2500.00\n"
    ).encode("utf-8")
    grid = ler_planilha(conteudo, "lista.csv")
    assert grid[0] == ["Nome", "Sexo", "CPF", "Data Nascimento", "Salário"]
    assert grid[1][2] == "529.982.247-25"


def test_ler_planilha_recusa_formato_tamanho_e_arquivo_vazio(monkeypatch):
    with pytest.raises(ImportacaoError):
        ler_planilha(b"qualquer coisa", "lista.pdf")

    with pytest.raises(ImportacaoError, match="vazio"):
        ler_planilha(criar_xlsx([]), "lista.xlsx")

    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 10)
    with pytest.raises(ImportacaoError, match="muito grande"):
        ler_planilha(b"x" * 11, "lista.xlsx")


def test_confirmar_importacao_insere_atualiza_e_desliga(repo, empresa_obra, cadastro_ativo, monkeypatch):
    # Arrange
    empresa_id, obra_id = empresa_obra
    monkeypatch.setattr(settings, "UPSERT_CHUNK_SIZE", 1)
    id_ana = next(c["id"] for c in cadastro_ativo if c["cpf"] == CPF_ANA)
    lista = [
        criar_colaborador(CPF_ANA, nome="ANA SOUZA", salario=4100.0),
        criar_colaborador(CPF_BRUNO, nome="BRUNO LIMA"),
        criar_colaborador(CPF_DANIEL, nome="DANIEL ROCHA", salario=1600.0),
    ]
    # Act
    resultado = confirmar_importacao(repo, lista, empresa_id, obra_id)
    # Assert
    assert resultado.as_dict() == {"novos": 1, "atualizados": 2, "desligados": 1}

    por_cpf = {c["cpf"]: c for c in repo.select("colaboradores")}
    assert por_cpf[CPF_ANA]["id"] == id_ana
    assert por_cpf[CPF_ANA]["salario"] == 4100.0
    assert por_cpf[CPF_ANA]["classificacao_salario"] == "Op. Qualificado III"
    assert por_cpf[CPF_DANIEL]["classificacao"] == "CLT"
    assert por_cpf[CPF_DANIEL]["status"] == "ativo"
    assert por_cpf[CPF_CARLA]["status"] == "desligado"
    assert len(ativos(repo, empresa_id, obra_id)) == 3

    historico = repo.select("historico_logs", {"acao": "importacao_colaboradores"})
    assert historico[0]["detalhes"]["desligados"] == 1


def test_confirmar_importacao_com_cadastro_em_cpf_formatado(repo, empresa_obra):
    # Arrange
    empresa_id, obra_id = empresa_obra
    ana, carla = repo.insert(
        "colaboradores",
        [
            {
                **criar_colaborador(cpf, nome=nome),
                "empresa_id": empresa_id,
                "obra_id": obra_id,
                "status": "ativo",
            }
            for cpf, nome in [("529.982.247-25", "ANA SOUZA"), ("123.456.789-09", "CARLA DIAS")]
        ],
    )
    lista = [criar_colaborador(CPF_ANA, nome="ANA SOUZA"), criar_colaborador(CPF_BRUNO, nome="BRUNO LIMA")]
    # Act
    resultado = confirmar_importacao(repo, lista, empresa_id, obra_id)
    # Assert
    assert resultado.as_dict() == {"novos": 1, "atualizados": 1, "desligados": 1}
    assert resultado.ids[CPF_ANA] == ana["id"]
    assert len(repo.select("colaboradores")) == 3
    assert repo.get("colaboradores", carla["id"])["status"] == "desligado"


def test_confirmar_importacao_recusa_lista_vazia_e_cpf_repetido(repo, empresa_obra):
    empresa_id, obra_id = empresa_obra
    with pytest.raises(ImportacaoError):
        confirmar_importacao(repo, [], empresa_id, obra_id)

    with pytest.raises(ImportacaoError, match="duplicado"):
        confirmar_importacao(
            repo,
            [criar_colaborador(CPF_ANA), criar_colaborador("529.982.247-25")],
            empresa_id,
            obra_id,
        )


def test_importar_lote_concluido(repo, empresa_obra, cadastro_ativo):
    # Arrange
    empresa_id, obra_id = empresa_obra
    lista = [criar_colaborador(CPF_ANA, nome="ana souza"), criar_colaborador(CPF_DANIEL, nome="daniel")]
    # Act
    lote = importar_lote_concluido(repo, lista, empresa_id, obra_id, "10/2026")
    # Assert
    assert lote["status"] == "concluido"
    assert lote["total_aprovados"] == 2
    assert lote["valor_total"] == pytest.approx(2 * settings.VALOR_POR_VIDA)

    itens = repo.select("colaboradores_lote", {"lote_id": lote["id"]})
    assert {i["status_seguradora"] for i in itens} == {"aprovado"}
    assert {i["nome"] for i in itens} == {"ANA SOUZA", "DANIEL"}

    # Ana já existia: mesmo id no cadastro mestre
    colaboradores = repo.select("colaboradores", {"cpf": CPF_ANA})
    assert len(colaboradores) == 1


def test_importar_lote_concluido_nao_mexe_em_outra_obra(repo, empresa_obra):
    # Arrange
    empresa_id, obra_id = empresa_obra
    outra_obra = repo.insert("obras", [{"nome": "Obra Norte", "empresa_id": empresa_id}])[0]
    daniel = repo.insert(
        "colaboradores",
        [
            {
                **criar_colaborador("390.533.447-05", nome="DANIEL ROCHA"),
                "empresa_id": empresa_id,
                "obra_id": outra_obra["id"],
                "status": "ativo",
            }
        ],
    )[0]
    # Act
    importar_lote_concluido(
        repo, [criar_colaborador(CPF_DANIEL, nome="daniel rocha")], empresa_id, obra_id, "10/2026"
    )
    # Assert
    assert repo.get("colaboradores", daniel["id"])["obra_id"] == outra_obra["id"]
    na_obra = repo.select("colaboradores", {"obra_id": obra_id})
    assert [c["cpf"] for c in na_obra] == [CPF_DANIEL]


def test_modelo_xlsx_tem_cabecalho_padrao():
    # Arrange / Act
    wb = load_workbook(io.BytesIO(gerar_modelo_xlsx()))
    # Assert
    ws = wb.active
    assert [c.value for c in ws[1]] == CABECALHO_MODELO
    assert ws["A1"].font.bold is True
