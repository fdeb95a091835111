# vvbeneficios/importacao/roster_differ.py
"""
Compara a planilha validada com o cadastro ativo da empresa/obra.
A chave de comparação é sempre o CPF (somente dígitos).
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Set

import pandas as pd

from vvbeneficios.shared.validators import only_digits

TOLERANCIA_SALARIO = 0.01


@dataclass
class RosterDelta:
    novos: Set[str] = field(default_factory=set)
    atualizados: Set[str] = field(default_factory=set)
    desligados: Set[str] = field(default_factory=set)

    def resumo(self) -> Dict[str, int]:
        return {
            "novos": len(self.novos),
            "atualizados": len(self.atualizados),
            "desligados": len(self.desligados),
        }


def indexar_por_cpf(existentes: Iterable[Mapping]) -> Dict[str, Mapping]:
    return {only_digits(c.get("cpf")): c for c in existentes if c.get("cpf")}


def detectar_alteracoes(linha: Mapping, existente: Mapping) -> List[str]:
    alteracoes = []
    if (existente.get("nome") or "") != linha["nome"]:
        alteracoes.append("Nome")
    if (existente.get("sexo") or "") != linha["sexo"]:
        alteracoes.append("Sexo")
    if str(existente.get("data_nascimento") or "")[:10] != linha["data_nascimento"]:
        alteracoes.append("Data Nasc.")
    salario_atual = existente.get("salario") or 0.0
    if abs(float(salario_atual) - float(linha["salario"])) > TOLERANCIA_SALARIO:
        alteracoes.append("Salário")
    return alteracoes


def classificar_linhas(df: pd.DataFrame, existentes: Iterable[Mapping]) -> pd.DataFrame:
    """
    Marca cada linha válida como 'novo', 'atualizado' ou 'inalterado' e
    preenche 'alteracoes' com os campos que mudaram. Linhas com erro ficam
    como estão.
    """
    if df.empty:
        return df

    mapa = indexar_por_cpf(existentes)
    resultado = df.copy()

    status, alteracoes = [], []
    for linha in resultado.to_dict(orient="records"):
        if linha["status"] == "erro":
            status.append("erro")
            alteracoes.append([])
            continue
        existente = mapa.get(linha["cpf"])
        if existente is None:
            status.append("novo")
            alteracoes.append([])
            continue
        mudancas = detectar_alteracoes(linha, existente)
        status.append("atualizado" if mudancas else "inalterado")
        alteracoes.append(mudancas)

    resultado["status"] = status
    resultado["alteracoes"] = alteracoes
    return resultado


def calcular_delta(cpfs_validos: Iterable[str], existentes: Iterable[Mapping]) -> RosterDelta:
    """
    novos: só na planilha; atualizados: nos dois; desligados: ativos que não
    vieram entre as linhas válidas.
    """
    cpfs_lista = {only_digits(c) for c in cpfs_validos if c}
    cpfs_ativos = set(indexar_por_cpf(existentes).keys())

    return RosterDelta(
        novos=cpfs_lista - cpfs_ativos,
        atualizados=cpfs_lista & cpfs_ativos,
        desligados=cpfs_ativos - cpfs_lista,
    )
