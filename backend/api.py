# api.py

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.logging_config import log
from vvbeneficios.config import settings
from vvbeneficios.database import ping
from vvbeneficios.empresas.router import router as empresas_router
from vvbeneficios.importacao.router import router as importacao_router
from vvbeneficios.lotes.router import router as lotes_router
from vvbeneficios.notificacoes.router import router as notificacoes_router

app = FastAPI(title=settings.APP_NAME, version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(importacao_router)
app.include_router(lotes_router)
app.include_router(empresas_router)
app.include_router(notificacoes_router)


@app.get("/health")
def health():
    banco_ok = ping()
    return {
        "status": "ok" if banco_ok else "degradado",
        "armazenamento": settings.STORAGE_BACKEND,
        "banco": banco_ok,
    }


log.info(f"{settings.APP_NAME} iniciado (armazenamento: {settings.STORAGE_BACKEND})")
