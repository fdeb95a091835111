import streamlit as st
import pandas as pd

from vvbeneficios.database import get_repository, ping
from vvbeneficios.exceptions import VVBeneficiosError
from vvbeneficios.importacao.reader import gerar_modelo_xlsx
from vvbeneficios.importacao.service import confirmar_importacao, preview_importacao
from vvbeneficios.lotes.report_generator import resumo_lote
from vvbeneficios.lotes.workflow import LoteWorkflow

st.set_page_config(page_title="VV Benefícios | Operacional", layout="wide")

repo = get_repository()


@st.cache_data(ttl=600)
def carregar_empresas():
    return {e["nome"]: e["id"] for e in repo.select("empresas", order_by="nome")}


def carregar_obras(empresa_id):
    return {o["nome"]: o["id"] for o in repo.select("obras", {"empresa_id": empresa_id}, order_by="nome")}


EMPRESAS = carregar_empresas()

with st.sidebar:
    st.title("Painel Operacional")
    page = st.radio(
        "Módulo",
        ["Importar Colaboradores", "Lotes"],
        label_visibility="collapsed",
    )
    st.divider()
    st.subheader("Status do Sistema")
    db_ok = ping()
    if db_ok:
        st.success("Banco de dados: Ativo")
    else:
        st.error("Banco de dados: Inativo")
    st.download_button(
        "Baixar planilha modelo",
        data=gerar_modelo_xlsx(),
        file_name="modelo_colaboradores.xlsx",
        use_container_width=True,
    )

if not EMPRESAS:
    st.warning("Nenhuma empresa cadastrada.")
    st.stop()

with st.container(border=True):
    colA, colB = st.columns(2)
    with colA:
        empresa_nome = st.selectbox("Empresa", list(EMPRESAS.keys()))
    empresa_id = EMPRESAS[empresa_nome]
    obras = carregar_obras(empresa_id)
    with colB:
        obra_nome = st.selectbox("Obra", list(obras.keys()) or ["(sem obra)"])
    obra_id = obras.get(obra_nome)

if page == "Importar Colaboradores":
    st.title("📥 Importar Lista de Colaboradores")
    st.info(
        "Envie a planilha (.xlsx ou .csv). Nada é gravado antes da confirmação: "
        "confira os novos, os atualizados e os desligamentos previstos."
    )

    arquivo = st.file_uploader("Planilha", type=["xlsx", "xlsm", "csv"])

    if arquivo is not None and st.button("Validar Planilha", type="primary", use_container_width=True):
        try:
            with st.spinner("Validando linhas..."):
                st.session_state["preview"] = preview_importacao(
                    repo, arquivo.getvalue(), arquivo.name, empresa_id, obra_id
                )
        except VVBeneficiosError as e:
            st.error(str(e), icon="🚨")

    if "preview" in st.session_state:
        preview = st.session_state["preview"]
        resumo = preview.resumo()

        st.divider()
        c1, c2, c3, c4, c5 = st.columns(5)
        c1.metric("Novos", resumo["novos"])
        c2.metric("Atualizados", resumo["atualizados"])
        c3.metric("Inalterados", resumo["inalterados"])
        c4.metric("Com erro", resumo["erros"])
        c5.metric("Desligamentos", resumo["desligamentos_previstos"])

        df_exibicao = preview.linhas.copy()
        df_exibicao["erros"] = df_exibicao["erros"].map(lambda e: "; ".join(e))
        df_exibicao["alteracoes"] = df_exibicao["alteracoes"].map(lambda a: ", ".join(a))
        st.dataframe(df_exibicao, use_container_width=True, hide_index=True)

        validos = preview.validos()
        if st.button(
            f"Confirmar Importação ({len(validos)} válidos)",
            type="primary",
            disabled=validos.empty,
            use_container_width=True,
        ):
            try:
                resultado = confirmar_importacao(
                    repo,
                    validos[
                        ["nome", "sexo", "cpf", "data_nascimento", "salario", "classificacao_salario"]
                    ].to_dict(orient="records"),
                    empresa_id,
                    obra_id,
                )
                st.success(
                    f"✅ {resultado.novos} novos, {resultado.atualizados} atualizados, "
                    f"{resultado.desligados} desligados."
                )
                del st.session_state["preview"]
            except VVBeneficiosError as e:
                st.error(str(e), icon="🚨")

elif page == "Lotes":
    st.title("📦 Lotes Mensais")
    lotes = LoteWorkflow(repo).listar_lotes(empresa_id=empresa_id)
    if not lotes:
        st.info("Nenhum lote enviado por esta empresa.")
    else:
        st.dataframe(
            pd.DataFrame([{**resumo_lote(l), "status": l["status"]} for l in lotes]),
            use_container_width=True,
            hide_index=True,
        )
