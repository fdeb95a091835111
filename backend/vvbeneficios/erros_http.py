# vvbeneficios/erros_http.py
from fastapi import HTTPException

from vvbeneficios.exceptions import (
    ColunasObrigatoriasError,
    DadosInvalidosError,
    ImportacaoError,
    RegistroNaoEncontradoError,
    TransicaoInvalidaError,
    VVBeneficiosError,
    WebhookError,
)

STATUS_POR_ERRO = [
    (RegistroNaoEncontradoError, 404),
    (TransicaoInvalidaError, 409),
    (ColunasObrigatoriasError, 422),
    (DadosInvalidosError, 422),
    (ImportacaoError, 400),
    (WebhookError, 502),
    (VVBeneficiosError, 400),
]


def para_http(erro: VVBeneficiosError) -> HTTPException:
    for tipo, status_code in STATUS_POR_ERRO:
        if isinstance(erro, tipo):
            return HTTPException(status_code=status_code, detail=str(erro))
    return HTTPException(status_code=500, detail=str(erro))
