# backend/vvbeneficios/config.py
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # --- Identificação do Ambiente ---
    APP_NAME: str = "VV Benefícios - Backend Operacional"
    LOG_LEVEL: str = "INFO"

    # --- Armazenamento ---
    # 'memory' para testes e execução local, 'supabase' em produção
    STORAGE_BACKEND: str = "memory"
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""

    # --- Importação de Planilhas ---
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    UPSERT_CHUNK_SIZE: int = 1000

    # --- Regras Comerciais ---
    VALOR_POR_VIDA: float = 50.0

    # --- Integrações (n8n) ---
    N8N_WEBHOOK_NOTIFICACAO_URL: str = (
        "https://grifoworkspace.app.n8n.cloud/webhook/vvbeneficios"
    )
    N8N_WEBHOOK_COBRANCA_URL: str = (
        "https://grifoworkspace.app.n8n.cloud/webhook/cobrancas-listas"
    )
    TEMPLATE_URL: str = (
        "https://gkmobhbmgxwrpuucoykn.supabase.co/storage/v1/object/public/MainBucket/modelo_padrao.xlsx"
    )
    WEBHOOK_TIMEOUT: int = 30

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings():
    return Settings()


# Instância global
settings = get_settings()
