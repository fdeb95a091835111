# backend/vvbeneficios/database.py
import logging
from functools import lru_cache

from supabase import create_client

from vvbeneficios.config import settings
from vvbeneficios.repository import (
    InMemoryRepository,
    RosterRepository,
    SupabaseRepository,
)

logger = logging.getLogger("vvbeneficios.database")


class DatabaseFactory:
    @staticmethod
    def get_client():
        if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
            raise RuntimeError("SUPABASE_URL e SUPABASE_KEY precisam estar no .env")
        return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)

    @staticmethod
    def get_repository() -> RosterRepository:
        backend = settings.STORAGE_BACKEND.lower()

        if backend == "supabase":
            return SupabaseRepository(DatabaseFactory.get_client())

        if backend == "memory":
            logger.warning("Usando armazenamento em memória (dados não persistem).")
            return InMemoryRepository()

        raise ValueError(f"STORAGE_BACKEND desconhecido: {settings.STORAGE_BACKEND}")


@lru_cache()
def get_repository() -> RosterRepository:
    """Instância única por processo; usada como dependência nos routers."""
    return DatabaseFactory.get_repository()


def ping() -> bool:
    try:
        return get_repository().ping()
    except Exception as e:
        logger.error(f"❌ Erro Crítico de Banco de Dados: {str(e)}")
        return False
