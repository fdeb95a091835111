# config/logging_config.py

import os
import sys
from dotenv import load_dotenv
from loguru import logger

# LOG_LEVEL e LOG_DIR podem vir do .env
load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "logs")

# Remove o handler padrão para não duplicar as mensagens no console.
logger.remove()

# Console: formato curto e colorido, nível vindo do ambiente (INFO por padrão).
logger.add(
    sys.stderr,
    level=LOG_LEVEL,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    colorize=True,
)

# Arquivo: tudo a partir de DEBUG, um arquivo novo a cada 10 MB, guardados por 30 dias.
# Cada importação de planilha e cada mudança de status de lote fica rastreável aqui.
logger.add(
    os.path.join(LOG_DIR, "vvbeneficios_{time}.log"),
    rotation="10 MB",
    retention="30 days",
    level="DEBUG",
    encoding="utf-8",
    format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
)

log = logger
