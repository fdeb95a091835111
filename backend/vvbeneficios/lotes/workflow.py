# vvbeneficios/lotes/workflow.py
"""
Orquestração do ciclo de vida do lote mensal:
criação -> envio à seguradora -> retorno -> correção/reenvio -> finalização -> faturamento.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from config.logging_config import log
from vvbeneficios.config import settings
from vvbeneficios.exceptions import (
    DadosInvalidosError,
    RegistroNaoEncontradoError,
    TransicaoInvalidaError,
    VVBeneficiosError,
)
from vvbeneficios.historico import registrar_historico
from vvbeneficios.lotes.models import (
    CAMPOS_CORRIGIVEIS,
    ORIGENS_PERMITIDAS,
    LoteStatus,
    ResultadoAnalise,
    StatusSeguradora,
    TotaisLote,
)
from vvbeneficios.repository import RosterRepository
from vvbeneficios.shared.utils import agora_iso
from vvbeneficios.shared.validators import only_digits, validate_cpf

TABELA_LOTES = "lotes_mensais"
TABELA_ITENS = "colaboradores_lote"
TABELA_COLABORADORES = "colaboradores"
TABELA_NOTAS = "notas_fiscais"
TABELA_APOLICES = "apolices"

EM_ABERTO = [StatusSeguradora.PENDENTE.value, StatusSeguradora.ENVIADO.value]
# Itens que já chegaram à seguradora e podem receber decisão individual
DECIDIVEIS = {
    StatusSeguradora.ENVIADO.value,
    StatusSeguradora.APROVADO.value,
    StatusSeguradora.REPROVADO.value,
}

CAMPOS_SNAPSHOT = (
    "nome",
    "cpf",
    "sexo",
    "data_nascimento",
    "salario",
    "classificacao",
    "classificacao_salario",
    "aposentado",
    "afastado",
)


class LoteWorkflow:
    """Gerencia as transições de status de um lote e de suas vidas."""

    def __init__(self, repo: RosterRepository, user_id: Optional[str] = None):
        self.repo = repo
        self.user_id = user_id

    # ------------------------------------------------------------------
    # Consultas auxiliares
    # ------------------------------------------------------------------

    def obter_lote(self, lote_id: str) -> Dict[str, Any]:
        lote = self.repo.get(TABELA_LOTES, lote_id)
        if not lote:
            raise RegistroNaoEncontradoError(TABELA_LOTES, lote_id)
        return lote

    def listar_lotes(
        self, empresa_id: Optional[str] = None, status: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        filtros = {}
        if empresa_id:
            filtros["empresa_id"] = empresa_id
        if status:
            filtros["status"] = status
        return self.repo.select(TABELA_LOTES, filtros, order_by="created_at", desc=True)

    def listar_itens(
        self,
        lote_id: str,
        tentativa: Optional[int] = None,
        status: Optional[Any] = None,
    ) -> List[Dict[str, Any]]:
        filtros: Dict[str, Any] = {"lote_id": lote_id}
        if tentativa is not None:
            filtros["tentativa_reenvio"] = tentativa
        if status is not None:
            filtros["status_seguradora"] = status
        return self.repo.select(TABELA_ITENS, filtros, order_by="nome")

    def tentativa_atual(self, lote_id: str) -> int:
        tentativas = [i.get("tentativa_reenvio") or 1 for i in self.listar_itens(lote_id)]
        return max(tentativas) if tentativas else 1

    def _exigir_status(self, lote: Mapping[str, Any], operacao: str) -> None:
        permitidos = [s.value for s in ORIGENS_PERMITIDAS[operacao]]
        if lote["status"] not in permitidos:
            raise TransicaoInvalidaError(
                f"Lote {lote['id']} está '{lote['status']}'; "
                f"'{operacao}' exige um destes status: {', '.join(permitidos)}"
            )

    def _atualizar_lote(self, lote_id: str, valores: Dict[str, Any]) -> Dict[str, Any]:
        valores["updated_at"] = agora_iso()
        return self.repo.update(TABELA_LOTES, valores, ids=[lote_id])[0]

    def calcular_totais(self, lote_id: str) -> TotaisLote:
        # Itens 'reenviado' foram substituídos pela tentativa seguinte
        itens = [
            i
            for i in self.listar_itens(lote_id)
            if i["status_seguradora"] != StatusSeguradora.REENVIADO.value
        ]
        aprovados = sum(
            1 for i in itens if i["status_seguradora"] == StatusSeguradora.APROVADO.value
        )
        reprovados = sum(
            1 for i in itens if i["status_seguradora"] == StatusSeguradora.REPROVADO.value
        )
        return TotaisLote(
            total_colaboradores=len(itens),
            total_aprovados=aprovados,
            total_reprovados=reprovados,
            valor_total=round(aprovados * settings.VALOR_POR_VIDA, 2),
        )

    def _gravar_totais(self, lote_id: str, incluir_colaboradores: bool = False) -> TotaisLote:
        totais = self.calcular_totais(lote_id)
        valores = totais.as_dict()
        if not incluir_colaboradores:
            valores.pop("total_colaboradores")
        self._atualizar_lote(lote_id, valores)
        return totais

    def _itens_por_id(self, item_ids: Iterable[str]) -> List[Dict[str, Any]]:
        itens = []
        for item_id in item_ids:
            item = self.repo.get(TABELA_ITENS, item_id)
            if not item:
                raise RegistroNaoEncontradoError(TABELA_ITENS, item_id)
            itens.append(item)
        return itens

    def _historico(self, acao: str, lote: Mapping[str, Any], **detalhes) -> None:
        registrar_historico(
            self.repo,
            acao,
            empresa_id=lote.get("empresa_id"),
            lote_id=lote["id"],
            user_id=self.user_id,
            detalhes=detalhes,
        )

    # ------------------------------------------------------------------
    # Criação e envio
    # ------------------------------------------------------------------

    def criar_lote(
        self,
        empresa_id: str,
        obra_id: str,
        competencia: str,
        observacoes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Tira uma foto da lista ativa da obra e abre o lote da competência.

        Args:
            empresa_id: Empresa cliente
            obra_id: Obra cuja lista será enviada
            competencia: Mês de referência no formato MM/AAAA

        Returns:
            Registro do lote criado
        """
        colaboradores = self.repo.select(
            TABELA_COLABORADORES,
            {"empresa_id": empresa_id, "obra_id": obra_id, "status": "ativo"},
            order_by="nome",
        )
        if not colaboradores:
            raise VVBeneficiosError("Adicione colaboradores antes de enviar o lote")

        ja_existe = self.repo.select(
            TABELA_LOTES,
            {"empresa_id": empresa_id, "obra_id": obra_id, "competencia": competencia},
            limit=1,
        )
        if ja_existe:
            raise TransicaoInvalidaError(
                f"Já existe lote para a competência {competencia} nesta obra"
            )

        anteriores = self.repo.select(
            TABELA_LOTES,
            {"empresa_id": empresa_id, "obra_id": obra_id},
            order_by="created_at",
            desc=True,
            limit=1,
        )
        corte = anteriores[0]["created_at"] if anteriores else None
        total_novos = sum(
            1 for c in colaboradores if corte is None or (c.get("created_at") or "") > corte
        )

        lote = self.repo.insert(
            TABELA_LOTES,
            [
                {
                    "empresa_id": empresa_id,
                    "obra_id": obra_id,
                    "competencia": competencia,
                    "status": LoteStatus.AGUARDANDO_PROCESSAMENTO.value,
                    "total_colaboradores": len(colaboradores),
                    "total_novos": total_novos,
                    "total_aprovados": 0,
                    "total_reprovados": 0,
                    "valor_total": 0.0,
                    "observacoes": observacoes,
                }
            ],
        )[0]

        self.repo.insert(
            TABELA_ITENS,
            [
                {
                    "lote_id": lote["id"],
                    "colaborador_id": c["id"],
                    **{campo: c.get(campo) for campo in CAMPOS_SNAPSHOT},
                    "status_seguradora": StatusSeguradora.PENDENTE.value,
                    "tentativa_reenvio": 1,
                    "motivo_reprovacao_seguradora": None,
                }
                for c in colaboradores
            ],
        )

        self._historico(
            "lote_criado", lote, competencia=competencia, total=len(colaboradores)
        )
        log.success(
            f"Lote {competencia} criado com {len(colaboradores)} vidas ({total_novos} novas)."
        )
        return lote

    def enviar_para_seguradora(self, lote_id: str) -> Dict[str, Any]:
        lote = self.obter_lote(lote_id)
        self._exigir_status(lote, "enviar")

        tentativa = self.tentativa_atual(lote_id)
        pendentes = self.listar_itens(lote_id, tentativa, StatusSeguradora.PENDENTE.value)
        if not pendentes:
            raise TransicaoInvalidaError(f"Lote {lote_id} não tem itens pendentes para envio")

        agora = agora_iso()
        self.repo.update(
            TABELA_ITENS,
            {"status_seguradora": StatusSeguradora.ENVIADO.value, "data_tentativa": agora},
            ids=[i["id"] for i in pendentes],
        )

        novo_status = (
            LoteStatus.EM_ANALISE_SEGURADORA if tentativa == 1 else LoteStatus.EM_REANALISE
        )
        lote = self._atualizar_lote(
            lote_id, {"status": novo_status.value, "enviado_seguradora_em": agora}
        )
        self._historico("lote_enviado_seguradora", lote, tentativa=tentativa, itens=len(pendentes))
        log.info(f"Lote {lote_id}: {len(pendentes)} vidas enviadas (tentativa {tentativa}).")
        return lote

    # ------------------------------------------------------------------
    # Retorno da seguradora
    # ------------------------------------------------------------------

    def processar_retorno(
        self, lote_id: str, reprovados: Optional[Mapping[str, str]] = None
    ) -> ResultadoAnalise:
        """
        Aplica o retorno da seguradora de uma vez: quem está na lista de
        reprovados recebe o motivo, todo o resto que estava 'enviado' é aprovado.
        """
        reprovados = dict(reprovados or {})
        lote = self.obter_lote(lote_id)
        self._exigir_status(lote, "analisar")

        sem_motivo = [item_id for item_id, motivo in reprovados.items() if not (motivo or "").strip()]
        if sem_motivo:
            raise DadosInvalidosError(
                f"Informe o motivo da reprovação para: {', '.join(sem_motivo)}"
            )

        enviados = self.listar_itens(lote_id, status=StatusSeguradora.ENVIADO.value)
        ids_enviados = {i["id"] for i in enviados}
        for item_id in reprovados:
            if item_id not in ids_enviados:
                raise RegistroNaoEncontradoError(TABELA_ITENS, item_id)

        ids_aprovados = [i for i in ids_enviados if i not in reprovados]
        if ids_aprovados:
            self.repo.update(
                TABELA_ITENS,
                {
                    "status_seguradora": StatusSeguradora.APROVADO.value,
                    "motivo_reprovacao_seguradora": None,
                },
                ids=ids_aprovados,
            )
        for item_id, motivo in reprovados.items():
            self.repo.update(
                TABELA_ITENS,
                {
                    "status_seguradora": StatusSeguradora.REPROVADO.value,
                    "motivo_reprovacao_seguradora": motivo.strip(),
                },
                ids=[item_id],
            )

        novo_status = (
            LoteStatus.COM_PENDENCIA if reprovados else LoteStatus.AGUARDANDO_FINALIZACAO
        )
        self._gravar_totais(lote_id)
        lote = self._atualizar_lote(lote_id, {"status": novo_status.value})

        self._historico(
            "retorno_seguradora",
            lote,
            aprovados=len(ids_aprovados),
            reprovados=len(reprovados),
        )
        log.info(
            f"Retorno do lote {lote_id}: {len(ids_aprovados)} aprovados, "
            f"{len(reprovados)} reprovados -> {novo_status.value}"
        )
        return ResultadoAnalise(
            lote_id=lote_id,
            status=novo_status,
            aprovados=len(ids_aprovados),
            reprovados=len(reprovados),
            itens_reprovados=list(reprovados),
        )

    def _decidir_itens(self, item_ids: List[str], valores: Dict[str, Any], acao: str) -> int:
        itens = self._itens_por_id(item_ids)
        lotes = {i["lote_id"] for i in itens}
        for lote_id in lotes:
            self._exigir_status(self.obter_lote(lote_id), "analisar")
        tentativas = {lote_id: self.tentativa_atual(lote_id) for lote_id in lotes}
        for item in itens:
            tentativa = item.get("tentativa_reenvio") or 1
            if (
                tentativa != tentativas[item["lote_id"]]
                or item["status_seguradora"] not in DECIDIVEIS
            ):
                raise TransicaoInvalidaError(
                    f"Item {item['id']} ({item['status_seguradora']}, tentativa {tentativa}) "
                    f"não pertence à análise atual do lote {item['lote_id']}"
                )

        self.repo.update(TABELA_ITENS, valores, ids=[i["id"] for i in itens])

        for lote_id in lotes:
            self._gravar_totais(lote_id)
            self._historico(acao, self.obter_lote(lote_id), itens=len(itens))
        return len(itens)

    def aprovar_itens(self, item_ids: List[str]) -> int:
        return self._decidir_itens(
            item_ids,
            {
                "status_seguradora": StatusSeguradora.APROVADO.value,
                "motivo_reprovacao_seguradora": None,
            },
            "itens_aprovados",
        )

    def reprovar_itens(self, item_ids: List[str], motivo: str) -> int:
        if not (motivo or "").strip():
            raise DadosInvalidosError("Informe o motivo da reprovação")
        return self._decidir_itens(
            item_ids,
            {
                "status_seguradora": StatusSeguradora.REPROVADO.value,
                "motivo_reprovacao_seguradora": motivo.strip(),
            },
            "itens_reprovados",
        )

    def aprovar_todos_nao_reprovados(self, lote_id: str) -> int:
        lote = self.obter_lote(lote_id)
        self._exigir_status(lote, "analisar")

        abertos = self.listar_itens(lote_id, self.tentativa_atual(lote_id), EM_ABERTO)
        if abertos:
            self.repo.update(
                TABELA_ITENS,
                {
                    "status_seguradora": StatusSeguradora.APROVADO.value,
                    "motivo_reprovacao_seguradora": None,
                },
                ids=[i["id"] for i in abertos],
            )
        self._gravar_totais(lote_id)
        self._historico("itens_aprovados", lote, itens=len(abertos))
        return len(abertos)

    def concluir_analise(self, lote_id: str) -> ResultadoAnalise:
        lote = self.obter_lote(lote_id)
        self._exigir_status(lote, "analisar")

        abertos = self.listar_itens(lote_id, self.tentativa_atual(lote_id), EM_ABERTO)
        if abertos:
            raise TransicaoInvalidaError(
                f"Ainda há {len(abertos)} vidas sem decisão da seguradora"
            )

        totais = self._gravar_totais(lote_id)
        novo_status = (
            LoteStatus.AGUARDANDO_CORRECAO
            if totais.total_reprovados
            else LoteStatus.AGUARDANDO_FINALIZACAO
        )
        lote = self._atualizar_lote(lote_id, {"status": novo_status.value})
        self._historico("analise_concluida", lote, status=novo_status.value)

        reprovados = self.listar_itens(lote_id, status=StatusSeguradora.REPROVADO.value)
        return ResultadoAnalise(
            lote_id=lote_id,
            status=novo_status,
            aprovados=totais.total_aprovados,
            reprovados=totais.total_reprovados,
            itens_reprovados=[i["id"] for i in reprovados],
        )

    # ------------------------------------------------------------------
    # Correção e reenvio
    # ------------------------------------------------------------------

    @staticmethod
    def _aplicar_correcao(item: Dict[str, Any], correcao: Mapping[str, Any]) -> Dict[str, Any]:
        desconhecidos = set(correcao) - set(CAMPOS_CORRIGIVEIS)
        if desconhecidos:
            raise DadosInvalidosError(
                f"Campos não corrigíveis: {', '.join(sorted(desconhecidos))}"
            )
        corrigido = dict(item)
        corrigido.update(correcao)
        if "cpf" in correcao:
            cpf = only_digits(correcao["cpf"])
            if not validate_cpf(cpf):
                raise DadosInvalidosError(f"CPF inválido na correção de {item['nome']}")
            corrigido["cpf"] = cpf
        return corrigido

    def reenviar_reprovados(
        self,
        lote_id: str,
        correcoes: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> Dict[str, Any]:
        correcoes = correcoes or {}
        lote = self.obter_lote(lote_id)
        self._exigir_status(lote, "reenviar")

        reprovados = self.listar_itens(lote_id, status=StatusSeguradora.REPROVADO.value)
        if not reprovados:
            raise TransicaoInvalidaError(f"Lote {lote_id} não tem vidas reprovadas")

        ids_reprovados = {i["id"] for i in reprovados}
        for item_id in correcoes:
            if item_id not in ids_reprovados:
                raise RegistroNaoEncontradoError(TABELA_ITENS, item_id)

        nova_tentativa = self.tentativa_atual(lote_id) + 1
        agora = agora_iso()

        novos_itens = []
        for item in reprovados:
            corrigido = self._aplicar_correcao(item, correcoes.get(item["id"], {}))
            novos_itens.append(
                {
                    "lote_id": lote_id,
                    "colaborador_id": item.get("colaborador_id"),
                    **{campo: corrigido.get(campo) for campo in CAMPOS_SNAPSHOT},
                    "status_seguradora": StatusSeguradora.PENDENTE.value,
                    "tentativa_reenvio": nova_tentativa,
                    "motivo_reprovacao_seguradora": None,
                    "data_tentativa": agora,
                }
            )
            # A correção também vale para o cadastro mestre
            mudancas = {c: corrigido[c] for c in CAMPOS_CORRIGIVEIS if corrigido.get(c) != item.get(c)}
            if mudancas and item.get("colaborador_id"):
                mudancas["updated_at"] = agora
                self.repo.update(TABELA_COLABORADORES, mudancas, ids=[item["colaborador_id"]])

        self.repo.insert(TABELA_ITENS, novos_itens)
        self.repo.update(
            TABELA_ITENS,
            {"status_seguradora": StatusSeguradora.REENVIADO.value},
            ids=list(ids_reprovados),
        )

        totais = self.calcular_totais(lote_id)
        lote = self._atualizar_lote(
            lote_id,
            {
                "status": LoteStatus.AGUARDANDO_REANALISE.value,
                "total_colaboradores": len(novos_itens),
                "total_aprovados": totais.total_aprovados,
                "total_reprovados": 0,
                "valor_total": totais.valor_total,
            },
        )
        self._historico(
            "reprovados_reenviados",
            lote,
            tentativa=nova_tentativa,
            itens=len(novos_itens),
            corrigidos=len(correcoes),
        )
        log.info(
            f"Lote {lote_id}: {len(novos_itens)} vidas reenviadas (tentativa {nova_tentativa})."
        )
        return lote

    # ------------------------------------------------------------------
    # Fechamento
    # ------------------------------------------------------------------

    def finalizar_lote(self, lote_id: str) -> Dict[str, Any]:
        """Fecha o lote e abre a nota fiscal e a apólice das vidas aprovadas."""
        lote = self.obter_lote(lote_id)
        self._exigir_status(lote, "finalizar")

        totais = self._gravar_totais(lote_id, incluir_colaboradores=True)
        agora = agora_iso()
        lote = self._atualizar_lote(
            lote_id, {"status": LoteStatus.CONCLUIDO.value, "aprovado_em": agora}
        )

        nota = self.repo.insert(
            TABELA_NOTAS,
            [
                {
                    "lote_id": lote_id,
                    "empresa_id": lote["empresa_id"],
                    "obra_id": lote.get("obra_id"),
                    "competencia": lote["competencia"],
                    "numero_vidas": totais.total_aprovados,
                    "valor_total": totais.valor_total,
                    "nf_emitida": False,
                    "numero_nf": None,
                }
            ],
        )[0]
        apolice = self.repo.insert(
            TABELA_APOLICES,
            [
                {
                    "lote_id": lote_id,
                    "empresa_id": lote["empresa_id"],
                    "obra_id": lote.get("obra_id"),
                    "numero_vidas_enviado": totais.total_aprovados,
                    "numero_vidas_adendo": None,
                    "numero_vidas_vitalmed": None,
                    "adendo_assinado": False,
                    "codigo_enviado": False,
                    "boas_vindas_enviado": False,
                }
            ],
        )[0]

        self._historico(
            "lote_finalizado",
            lote,
            vidas=totais.total_aprovados,
            valor_total=totais.valor_total,
        )
        log.success(
            f"Lote {lote_id} concluído: {totais.total_aprovados} vidas, "
            f"R$ {totais.valor_total:,.2f}"
        )
        return {"lote": lote, "nota_fiscal": nota, "apolice": apolice}

    def faturar_lote(self, lote_id: str, numero_nf: Optional[str] = None) -> Dict[str, Any]:
        lote = self.obter_lote(lote_id)
        self._exigir_status(lote, "faturar")

        notas = self.repo.select(TABELA_NOTAS, {"lote_id": lote_id}, limit=1)
        if not notas:
            raise RegistroNaoEncontradoError(TABELA_NOTAS, lote_id)

        agora = agora_iso()
        nota = self.repo.update(
            TABELA_NOTAS,
            {"nf_emitida": True, "numero_nf": numero_nf, "nf_emitida_em": agora},
            ids=[notas[0]["id"]],
        )[0]
        lote = self._atualizar_lote(lote_id, {"status": LoteStatus.FATURADO.value})

        self._historico("lote_faturado", lote, numero_nf=numero_nf)
        log.success(f"Lote {lote_id} faturado (NF {numero_nf or '-'}).")
        return {"lote": lote, "nota_fiscal": nota}
