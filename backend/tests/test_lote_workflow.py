# tests/test_lote_workflow.py

import pytest

from conftest import CPF_ANA, CPF_BRUNO, CPF_CARLA, CPF_DANIEL
from vvbeneficios.exceptions import (
    DadosInvalidosError,
    RegistroNaoEncontradoError,
    TransicaoInvalidaError,
    VVBeneficiosError,
)
from vvbeneficios.lotes.report_generator import (
    gerar_planilha_reprovados,
    gerar_relatorio_aprovados_pdf,
    mascarar_cpf,
)
from vvbeneficios.lotes.workflow import LoteWorkflow


@pytest.fixture
def wf(repo):
    return LoteWorkflow(repo, user_id="operador-1")


@pytest.fixture
def lote_enviado(wf, empresa_obra, cadastro_ativo):
    empresa_id, obra_id = empresa_obra
    lote = wf.criar_lote(empresa_id, obra_id, "10/2026")
    wf.enviar_para_seguradora(lote["id"])
    return lote["id"]


def item_por_cpf(wf, lote_id, cpf, status=None):
    return next(i for i in wf.listar_itens(lote_id, status=status) if i["cpf"] == cpf)


def test_criar_lote_tira_foto_da_lista_ativa(wf, repo, empresa_obra, cadastro_ativo):
    # Arrange
    empresa_id, obra_id = empresa_obra
    # Act
    lote = wf.criar_lote(empresa_id, obra_id, "10/2026", observacoes="Primeiro envio")
    # Assert
    assert lote["status"] == "aguardando_processamento"
    assert lote["total_colaboradores"] == 3
    assert lote["total_novos"] == 3
    itens = wf.listar_itens(lote["id"])
    assert {i["status_seguradora"] for i in itens} == {"pendente"}
    assert {i["tentativa_reenvio"] for i in itens} == {1}
    assert repo.select("historico_logs", {"lote_id": lote["id"], "acao": "lote_criado"})


def test_segundo_lote_conta_apenas_os_novos(wf, repo, empresa_obra, cadastro_ativo):
    empresa_id, obra_id = empresa_obra
    wf.criar_lote(empresa_id, obra_id, "09/2026")
    repo.insert(
        "colaboradores",
        [{"nome": "DANIEL", "cpf": CPF_DANIEL, "empresa_id": empresa_id, "obra_id": obra_id, "status": "ativo"}],
    )

    lote = wf.criar_lote(empresa_id, obra_id, "10/2026")

    assert lote["total_colaboradores"] == 4
    assert lote["total_novos"] == 1


def test_criar_lote_sem_colaboradores_ou_competencia_repetida(wf, empresa_obra, cadastro_ativo):
    empresa_id, obra_id = empresa_obra
    with pytest.raises(VVBeneficiosError):
        wf.criar_lote(empresa_id, "obra-vazia", "10/2026")

    wf.criar_lote(empresa_id, obra_id, "10/2026")
    with pytest.raises(TransicaoInvalidaError):
        wf.criar_lote(empresa_id, obra_id, "10/2026")


def test_enviar_para_seguradora(wf, lote_enviado):
    lote = wf.obter_lote(lote_enviado)
    assert lote["status"] == "em_analise_seguradora"
    assert lote["enviado_seguradora_em"]
    assert {i["status_seguradora"] for i in wf.listar_itens(lote_enviado)} == {"enviado"}

    with pytest.raises(TransicaoInvalidaError):
        wf.enviar_para_seguradora(lote_enviado)


def test_retorno_sem_reprovacao_vai_para_finalizacao(wf, lote_enviado):
    # Act
    resultado = wf.processar_retorno(lote_enviado, {})
    # Assert
    assert resultado.status.value == "aguardando_finalizacao"
    lote = wf.obter_lote(lote_enviado)
    assert lote["total_aprovados"] == 3
    assert lote["valor_total"] == pytest.approx(150.0)


def test_ciclo_completo_com_reprovacao_e_reenvio(wf, repo, lote_enviado):
    # Arrange
    carla = item_por_cpf(wf, lote_enviado, CPF_CARLA)

    # Act 1: seguradora reprova a Carla
    resultado = wf.processar_retorno(lote_enviado, {carla["id"]: "CPF divergente na Receita"})

    # Assert 1
    assert resultado.status.value == "com_pendencia"
    assert resultado.itens_reprovados == [carla["id"]]
    lote = wf.obter_lote(lote_enviado)
    assert (lote["total_aprovados"], lote["total_reprovados"]) == (2, 1)
    assert lote["valor_total"] == pytest.approx(100.0)
    reprovado = repo.get("colaboradores_lote", carla["id"])
    assert reprovado["motivo_reprovacao_seguradora"] == "CPF divergente na Receita"

    # Act 2: cliente corrige o CPF e reenvia
    lote = wf.reenviar_reprovados(lote_enviado, {carla["id"]: {"cpf": "390.533.447-05"}})

    # Assert 2
    assert lote["status"] == "aguardando_reanalise"
    assert lote["total_colaboradores"] == 1
    assert repo.get("colaboradores_lote", carla["id"])["status_seguradora"] == "reenviado"
    novo = wf.listar_itens(lote_enviado, tentativa=2)
    assert len(novo) == 1
    assert novo[0]["cpf"] == CPF_DANIEL
    assert novo[0]["status_seguradora"] == "pendente"
    assert repo.get("colaboradores", carla["colaborador_id"])["cpf"] == CPF_DANIEL

    # Act 3: segunda análise aprova tudo
    assert wf.enviar_para_seguradora(lote_enviado)["status"] == "em_reanalise"
    assert wf.processar_retorno(lote_enviado).status.value == "aguardando_finalizacao"
    final = wf.finalizar_lote(lote_enviado)

    # Assert 3
    assert final["lote"]["status"] == "concluido"
    assert final["lote"]["aprovado_em"]
    assert final["lote"]["total_colaboradores"] == 3
    assert final["nota_fiscal"]["numero_vidas"] == 3
    assert final["nota_fiscal"]["valor_total"] == pytest.approx(150.0)
    assert final["nota_fiscal"]["nf_emitida"] is False
    assert final["apolice"]["numero_vidas_enviado"] == 3

    # Act 4: faturamento
    faturado = wf.faturar_lote(lote_enviado, numero_nf="000123")
    assert faturado["lote"]["status"] == "faturado"
    assert faturado["nota_fiscal"]["nf_emitida"] is True
    assert faturado["nota_fiscal"]["numero_nf"] == "000123"

    acoes = [h["acao"] for h in repo.select("historico_logs", {"lote_id": lote_enviado})]
    assert "reprovados_reenviados" in acoes
    assert "lote_faturado" in acoes


def test_retorno_exige_motivo_e_itens_do_lote(wf, lote_enviado):
    ana = item_por_cpf(wf, lote_enviado, CPF_ANA)
    with pytest.raises(DadosInvalidosError):
        wf.processar_retorno(lote_enviado, {ana["id"]: "   "})
    with pytest.raises(RegistroNaoEncontradoError):
        wf.processar_retorno(lote_enviado, {"item-inexistente": "Motivo"})


def test_decisoes_individuais_e_concluir_analise(wf, lote_enviado):
    # Arrange
    ana = item_por_cpf(wf, lote_enviado, CPF_ANA)
    bruno = item_por_cpf(wf, lote_enviado, CPF_BRUNO)

    # Ainda há vidas sem decisão
    wf.aprovar_itens([ana["id"]])
    with pytest.raises(TransicaoInvalidaError):
        wf.concluir_analise(lote_enviado)

    # Act
    wf.reprovar_itens([bruno["id"]], "Idade acima do limite")
    aprovados = wf.aprovar_todos_nao_reprovados(lote_enviado)
    resultado = wf.concluir_analise(lote_enviado)

    # Assert
    assert aprovados == 1
    assert resultado.status.value == "aguardando_correcao"
    assert resultado.itens_reprovados == [bruno["id"]]
    assert wf.obter_lote(lote_enviado)["total_reprovados"] == 1

    with pytest.raises(DadosInvalidosError):
        wf.reprovar_itens([ana["id"]], "")


def test_aprovar_item_limpa_motivo(wf, repo, lote_enviado):
    bruno = item_por_cpf(wf, lote_enviado, CPF_BRUNO)
    wf.reprovar_itens([bruno["id"]], "Documento ilegível")
    wf.aprovar_itens([bruno["id"]])
    item = repo.get("colaboradores_lote", bruno["id"])
    assert item["status_seguradora"] == "aprovado"
    assert item["motivo_reprovacao_seguradora"] is None


def test_decisao_so_vale_para_a_tentativa_atual(wf, lote_enviado):
    # Arrange: Carla reprovada, corrigida e reenviada
    carla = item_por_cpf(wf, lote_enviado, CPF_CARLA)
    wf.processar_retorno(lote_enviado, {carla["id"]: "CPF divergente na Receita"})
    wf.reenviar_reprovados(lote_enviado, {carla["id"]: {"cpf": "390.533.447-05"}})
    wf.enviar_para_seguradora(lote_enviado)

    # Act / Assert: o item da primeira tentativa não pode mais ser decidido
    with pytest.raises(TransicaoInvalidaError):
        wf.aprovar_itens([carla["id"]])
    with pytest.raises(TransicaoInvalidaError):
        wf.reprovar_itens([carla["id"]], "Duplicado")

    wf.processar_retorno(lote_enviado)
    final = wf.finalizar_lote(lote_enviado)
    assert final["nota_fiscal"]["numero_vidas"] == 3
    assert final["nota_fiscal"]["valor_total"] == pytest.approx(150.0)


def test_transicoes_invalidas(wf, lote_enviado):
    with pytest.raises(TransicaoInvalidaError):
        wf.finalizar_lote(lote_enviado)
    with pytest.raises(TransicaoInvalidaError):
        wf.faturar_lote(lote_enviado)
    with pytest.raises(TransicaoInvalidaError):
        wf.reenviar_reprovados(lote_enviado)
    with pytest.raises(RegistroNaoEncontradoError):
        wf.enviar_para_seguradora("lote-inexistente")


def test_correcao_com_cpf_invalido_e_recusada(wf, lote_enviado):
    carla = item_por_cpf(wf, lote_enviado, CPF_CARLA)
    wf.processar_retorno(lote_enviado, {carla["id"]: "CPF divergente"})
    with pytest.raises(DadosInvalidosError):
        wf.reenviar_reprovados(lote_enviado, {carla["id"]: {"cpf": "123.456.789-00"}})
    with pytest.raises(DadosInvalidosError):
        wf.reenviar_reprovados(lote_enviado, {carla["id"]: {"status": "ativo"}})


def test_relatorios_do_lote(wf, repo, lote_enviado):
    # Arrange
    carla = item_por_cpf(wf, lote_enviado, CPF_CARLA)
    wf.processar_retorno(lote_enviado, {carla["id"]: "CPF divergente"})
    lote = wf.obter_lote(lote_enviado)
    itens = wf.listar_itens(lote_enviado)
    empresa = repo.get("empresas", lote["empresa_id"])
    # Act
    pdf = gerar_relatorio_aprovados_pdf(lote, itens, empresa)
    xlsx = gerar_planilha_reprovados(lote, itens)
    # Assert
    assert pdf.startswith(b"%PDF")
    assert xlsx[:2] == b"PK"
    assert mascarar_cpf("529.982.247-25") == "***.982.247-**"
