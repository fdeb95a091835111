# vvbeneficios/importacao/service.py
"""
Fluxo completo de importação da lista de colaboradores:
leitura -> cabeçalho -> validação -> comparação com o cadastro -> gravação.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from config.logging_config import log
from vvbeneficios.config import settings
from vvbeneficios.exceptions import ColunasObrigatoriasError, ImportacaoError
from vvbeneficios.historico import registrar_historico
from vvbeneficios.importacao.header_mapper import (
    ColumnIndexes,
    find_header_row_index,
    map_column_indexes,
    validate_required_columns,
)
from vvbeneficios.importacao.reader import ler_planilha
from vvbeneficios.importacao.roster_differ import (
    calcular_delta,
    classificar_linhas,
    indexar_por_cpf,
)
from vvbeneficios.importacao.row_validator import (
    ColaboradorImport,
    calcular_classificacao_salario,
    validar_linhas,
)
from vvbeneficios.lotes.models import LoteStatus, StatusSeguradora
from vvbeneficios.repository import RosterRepository
from vvbeneficios.shared.utils import agora_iso, em_blocos

TABELA_COLABORADORES = "colaboradores"
TABELA_LOTES = "lotes_mensais"
TABELA_ITENS = "colaboradores_lote"
LOTE_ITENS_BATCH_SIZE = 100


@dataclass
class ImportPreview:
    header_row: int
    colunas: ColumnIndexes
    linhas: pd.DataFrame
    desligamentos_previstos: int = 0

    def resumo(self) -> Dict[str, int]:
        contagem = Counter(self.linhas["status"]) if not self.linhas.empty else Counter()
        return {
            "total": len(self.linhas),
            "novos": contagem.get("novo", 0),
            "atualizados": contagem.get("atualizado", 0),
            "inalterados": contagem.get("inalterado", 0),
            "erros": contagem.get("erro", 0),
            "desligamentos_previstos": self.desligamentos_previstos,
        }

    def validos(self) -> pd.DataFrame:
        return self.linhas[self.linhas["status"] != "erro"]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "header_row": self.header_row,
            "colunas": self.colunas.as_dict(),
            "resumo": self.resumo(),
            "linhas": self.linhas.to_dict(orient="records"),
        }


@dataclass
class ImportResult:
    novos: int = 0
    atualizados: int = 0
    desligados: int = 0
    ids: Dict[str, str] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, int]:
        return {"novos": self.novos, "atualizados": self.atualizados, "desligados": self.desligados}


def buscar_ativos(repo: RosterRepository, empresa_id: str, obra_id: Optional[str]) -> List[Dict]:
    return repo.select(
        TABELA_COLABORADORES,
        {"empresa_id": empresa_id, "obra_id": obra_id, "status": "ativo"},
    )


def preview_importacao(
    repo: RosterRepository,
    conteudo: bytes,
    filename: str,
    empresa_id: str,
    obra_id: Optional[str],
) -> ImportPreview:
    grid = ler_planilha(conteudo, filename)

    header_row = find_header_row_index(grid)
    headers = ["" if h is None else str(h).strip() for h in grid[header_row]]
    colunas = map_column_indexes(headers)

    faltantes = validate_required_columns(colunas)
    if faltantes:
        log.warning(f"Planilha '{filename}' sem colunas obrigatórias: {faltantes}")
        raise ColunasObrigatoriasError(faltantes)

    log.info(f"Cabeçalho na linha {header_row + 1}; colunas mapeadas: {colunas.as_dict()}")

    existentes = buscar_ativos(repo, empresa_id, obra_id)
    linhas = classificar_linhas(validar_linhas(grid, header_row, colunas), existentes)

    cpfs_validos = linhas.loc[linhas["status"] != "erro", "cpf"].tolist() if not linhas.empty else []
    delta = calcular_delta(cpfs_validos, existentes)

    preview = ImportPreview(
        header_row=header_row,
        colunas=colunas,
        linhas=linhas,
        desligamentos_previstos=len(delta.desligados),
    )
    log.success(f"Pré-visualização pronta: {preview.resumo()}")
    return preview


def _normalizar_entrada(
    colaboradores: Sequence[Union[ColaboradorImport, Dict[str, Any]]],
) -> List[ColaboradorImport]:
    modelos = [
        c if isinstance(c, ColaboradorImport) else ColaboradorImport(**c) for c in colaboradores
    ]
    duplicados = [cpf for cpf, n in Counter(m.cpf for m in modelos).items() if n > 1]
    if duplicados:
        raise ImportacaoError(f"CPF duplicado na lista: {', '.join(sorted(duplicados))}")
    return modelos


def confirmar_importacao(
    repo: RosterRepository,
    colaboradores: Sequence[Union[ColaboradorImport, Dict[str, Any]]],
    empresa_id: str,
    obra_id: Optional[str],
    user_id: Optional[str] = None,
) -> ImportResult:
    """
    Grava a lista como o novo cadastro ativo da empresa/obra:
    insere os novos, atualiza os existentes e desliga quem não veio.
    """
    modelos = _normalizar_entrada(colaboradores)
    if not modelos:
        raise ImportacaoError("Nenhum colaborador válido")

    existentes = buscar_ativos(repo, empresa_id, obra_id)
    mapa_existentes = indexar_por_cpf(existentes)
    delta = calcular_delta([m.cpf for m in modelos], existentes)

    agora = agora_iso()
    upsert_data = []
    for colab in modelos:
        dados_base = {
            "nome": colab.nome,
            "sexo": colab.sexo,
            "cpf": colab.cpf,
            "data_nascimento": colab.data_nascimento,
            "salario": colab.salario,
            "classificacao_salario": colab.classificacao_salario
            or calcular_classificacao_salario(colab.salario),
            "classificacao": "CLT",
            "aposentado": False,
            "afastado": False,
            "empresa_id": empresa_id,
            "obra_id": obra_id,
            "status": "ativo",
            "updated_at": agora,
        }
        existente = mapa_existentes.get(colab.cpf)
        if existente:
            dados_base["id"] = existente["id"]
        upsert_data.append(dados_base)

    resultado = ImportResult(novos=len(delta.novos), atualizados=len(delta.atualizados))

    for bloco in em_blocos(upsert_data, settings.UPSERT_CHUNK_SIZE):
        for gravado in repo.upsert(TABELA_COLABORADORES, bloco):
            resultado.ids[gravado["cpf"]] = gravado["id"]

    ids_para_desligar = [mapa_existentes[cpf]["id"] for cpf in delta.desligados]
    for bloco in em_blocos(ids_para_desligar, settings.UPSERT_CHUNK_SIZE):
        repo.update(
            TABELA_COLABORADORES,
            {"status": "desligado", "updated_at": agora},
            ids=bloco,
        )
    resultado.desligados = len(ids_para_desligar)

    registrar_historico(
        repo,
        "importacao_colaboradores",
        empresa_id=empresa_id,
        user_id=user_id,
        detalhes={"obra_id": obra_id, **resultado.as_dict()},
    )
    log.success(
        f"Importação concluída: {resultado.novos} novos, "
        f"{resultado.atualizados} atualizados, {resultado.desligados} desligados."
    )
    return resultado


def importar_lote_concluido(
    repo: RosterRepository,
    colaboradores: Sequence[Union[ColaboradorImport, Dict[str, Any]]],
    empresa_id: str,
    obra_id: str,
    competencia: str,
    user_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Importação administrativa de uma lista já aprovada pela seguradora:
    o lote nasce 'concluido' e todos os itens 'aprovado'.
    """
    modelos = _normalizar_entrada(colaboradores)
    if not modelos:
        raise ImportacaoError("Nenhum colaborador válido encontrado na planilha.")

    agora = agora_iso()
    total = len(modelos)
    lote = repo.insert(
        TABELA_LOTES,
        [
            {
                "empresa_id": empresa_id,
                "obra_id": obra_id,
                "competencia": competencia,
                "status": LoteStatus.CONCLUIDO.value,
                "total_colaboradores": total,
                "total_aprovados": total,
                "total_reprovados": 0,
                "valor_total": round(total * settings.VALOR_POR_VIDA, 2),
                "enviado_seguradora_em": agora,
                "aprovado_em": agora,
            }
        ],
    )[0]

    existentes = indexar_por_cpf(
        repo.select(TABELA_COLABORADORES, {"empresa_id": empresa_id, "obra_id": obra_id})
    )

    for bloco in em_blocos(modelos, LOTE_ITENS_BATCH_SIZE):
        mestre = []
        for c in bloco:
            registro = {
                "empresa_id": empresa_id,
                "obra_id": obra_id,
                "nome": c.nome.upper(),
                "cpf": c.cpf,
                "sexo": c.sexo,
                "data_nascimento": c.data_nascimento,
                "salario": c.salario,
                "classificacao_salario": c.classificacao_salario
                or calcular_classificacao_salario(c.salario),
                "status": "ativo",
                "updated_at": agora,
            }
            if c.cpf in existentes:
                registro["id"] = existentes[c.cpf]["id"]
            mestre.append(registro)
        gravados = {g["cpf"]: g["id"] for g in repo.upsert(TABELA_COLABORADORES, mestre)}

        repo.insert(
            TABELA_ITENS,
            [
                {
                    "lote_id": lote["id"],
                    "colaborador_id": gravados.get(m["cpf"]),
                    "nome": m["nome"],
                    "cpf": m["cpf"],
                    "sexo": m["sexo"],
                    "data_nascimento": m["data_nascimento"],
                    "salario": m["salario"],
                    "classificacao_salario": m["classificacao_salario"],
                    "status_seguradora": StatusSeguradora.APROVADO.value,
                    "tentativa_reenvio": 1,
                }
                for m in mestre
            ],
        )

    registrar_historico(
        repo,
        "lote_importado_concluido",
        empresa_id=empresa_id,
        lote_id=lote["id"],
        user_id=user_id,
        detalhes={"competencia": competencia, "total": total},
    )
    log.success(f"Lote {lote['id']} importado e finalizado com {total} vidas.")
    return lote
