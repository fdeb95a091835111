# backend/vvbeneficios/repository.py
"""
Acesso às tabelas do sistema (empresas, obras, colaboradores, lotes_mensais,
colaboradores_lote, notas_fiscais, apolices, historico_logs,
historico_cobrancas).

Os filtros seguem a convenção do PostgREST: valor escalar vira igualdade,
lista vira IN, None vira IS NULL.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from vvbeneficios.shared.utils import agora_iso

logger = logging.getLogger("vvbeneficios.repository")

Filtros = Optional[Mapping[str, Any]]


class RosterRepository(Protocol):
    def select(
        self,
        tabela: str,
        filtros: Filtros = None,
        order_by: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]: ...

    def get(self, tabela: str, registro_id: str) -> Optional[Dict[str, Any]]: ...

    def insert(self, tabela: str, registros: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]: ...

    def upsert(self, tabela: str, registros: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]: ...

    def update(
        self,
        tabela: str,
        valores: Mapping[str, Any],
        filtros: Filtros = None,
        ids: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]: ...

    def ping(self) -> bool: ...


def _combina(registro: Mapping[str, Any], filtros: Filtros) -> bool:
    for coluna, esperado in (filtros or {}).items():
        valor = registro.get(coluna)
        if isinstance(esperado, (list, tuple, set)):
            if valor not in esperado:
                return False
        elif valor != esperado:
            return False
    return True


class InMemoryRepository:
    """Implementação em memória usada nos testes e em execuções locais."""

    def __init__(self):
        self.tabelas: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def _tabela(self, nome: str) -> Dict[str, Dict[str, Any]]:
        return self.tabelas.setdefault(nome, {})

    def select(self, tabela, filtros=None, order_by=None, desc=False, limit=None):
        registros = [
            copy.deepcopy(r) for r in self._tabela(tabela).values() if _combina(r, filtros)
        ]
        if order_by:
            # Nulos por último no ASC e primeiro no DESC, como no Postgres
            registros.sort(
                key=lambda r: (r.get(order_by) is None, r.get(order_by)),
                reverse=desc,
            )
        if limit is not None:
            registros = registros[:limit]
        return registros

    def get(self, tabela, registro_id):
        registro = self._tabela(tabela).get(registro_id)
        return copy.deepcopy(registro) if registro else None

    def insert(self, tabela, registros):
        inseridos = []
        agora = agora_iso()
        for registro in registros:
            novo = dict(registro)
            novo.setdefault("id", str(uuid.uuid4()))
            novo.setdefault("created_at", agora)
            novo.setdefault("updated_at", agora)
            self._tabela(tabela)[novo["id"]] = novo
            inseridos.append(copy.deepcopy(novo))
        return inseridos

    def upsert(self, tabela, registros):
        resultado = []
        for registro in registros:
            registro_id = registro.get("id")
            atual = self._tabela(tabela).get(registro_id) if registro_id else None
            if atual is None:
                resultado.extend(self.insert(tabela, [registro]))
            else:
                atual.update(registro)
                resultado.append(copy.deepcopy(atual))
        return resultado

    def update(self, tabela, valores, filtros=None, ids=None):
        alterados = []
        for registro in self._tabela(tabela).values():
            if ids is not None and registro["id"] not in ids:
                continue
            if not _combina(registro, filtros):
                continue
            registro.update(valores)
            alterados.append(copy.deepcopy(registro))
        return alterados

    def ping(self) -> bool:
        return True


class SupabaseRepository:
    """Implementação sobre o client oficial do Supabase (PostgREST)."""

    def __init__(self, client):
        self.client = client

    @staticmethod
    def _aplicar_filtros(query, filtros: Filtros):
        for coluna, valor in (filtros or {}).items():
            if isinstance(valor, (list, tuple, set)):
                query = query.in_(coluna, list(valor))
            elif valor is None:
                query = query.is_(coluna, "null")
            else:
                query = query.eq(coluna, valor)
        return query

    def select(self, tabela, filtros=None, order_by=None, desc=False, limit=None):
        query = self._aplicar_filtros(self.client.table(tabela).select("*"), filtros)
        if order_by:
            query = query.order(order_by, desc=desc)
        if limit is not None:
            query = query.limit(limit)
        return query.execute().data or []

    def get(self, tabela, registro_id):
        dados = self.select(tabela, {"id": registro_id}, limit=1)
        return dados[0] if dados else None

    def insert(self, tabela, registros):
        if not registros:
            return []
        return self.client.table(tabela).insert(list(registros)).execute().data or []

    def upsert(self, tabela, registros):
        if not registros:
            return []
        return self.client.table(tabela).upsert(list(registros)).execute().data or []

    def update(self, tabela, valores, filtros=None, ids=None):
        if ids is not None and not ids:
            return []
        query = self._aplicar_filtros(self.client.table(tabela).update(dict(valores)), filtros)
        if ids is not None:
            query = query.in_("id", list(ids))
        return query.execute().data or []

    def ping(self) -> bool:
        try:
            self.client.table("empresas").select("id").limit(1).execute()
            return True
        except Exception as e:
            logger.error(f"❌ Supabase indisponível: {e}")
            return False
