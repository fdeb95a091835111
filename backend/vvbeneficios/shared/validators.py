import re
from typing import Any

_NAO_DIGITO = re.compile(r"\D")

PESOS_CNPJ_1 = [5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]
PESOS_CNPJ_2 = [6] + PESOS_CNPJ_1


def only_digits(value: Any) -> str:
    if value is None:
        return ""
    # Colunas JSONB (ex: responsavel_cpf) chegam como lista
    if isinstance(value, (list, tuple)):
        value = value[0] if value else ""
    # Planilhas às vezes devolvem o CPF como float (12345678909.0)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return _NAO_DIGITO.sub("", str(value))


def _digito_mod11(soma: int) -> int:
    resto = soma % 11
    return 0 if resto < 2 else 11 - resto


def validate_cpf(cpf: Any) -> bool:
    """Valida CPF brasileiro (tamanho, sequência repetida e dígitos verificadores)."""
    cpf = only_digits(cpf)

    if len(cpf) != 11:
        return False

    if cpf == cpf[0] * 11:
        return False

    digito1 = _digito_mod11(sum(int(cpf[i]) * (10 - i) for i in range(9)))
    if digito1 != int(cpf[9]):
        return False

    digito2 = _digito_mod11(sum(int(cpf[i]) * (11 - i) for i in range(10)))
    return digito2 == int(cpf[10])


def validate_cnpj(cnpj: Any) -> bool:
    cnpj = only_digits(cnpj)

    if len(cnpj) != 14:
        return False

    if cnpj == cnpj[0] * 14:
        return False

    digito1 = _digito_mod11(sum(int(d) * p for d, p in zip(cnpj[:12], PESOS_CNPJ_1)))
    if digito1 != int(cnpj[12]):
        return False

    digito2 = _digito_mod11(sum(int(d) * p for d, p in zip(cnpj[:13], PESOS_CNPJ_2)))
    return digito2 == int(cnpj[13])


def format_cpf(value: Any) -> str:
    """Aplica a máscara 000.000.000-00, inclusive em valores parciais."""
    digitos = only_digits(value)[:11]
    if not digitos:
        return ""
    partes = [digitos[0:3], digitos[3:6], digitos[6:9]]
    mascara = ".".join(p for p in partes if p)
    if len(digitos) > 9:
        mascara += "-" + digitos[9:11]
    return mascara


def format_cnpj(value: Any) -> str:
    digitos = only_digits(value)[:14]
    if not digitos:
        return ""
    mascara = digitos[0:2]
    if len(digitos) > 2:
        mascara += "." + digitos[2:5]
    if len(digitos) > 5:
        mascara += "." + digitos[5:8]
    if len(digitos) > 8:
        mascara += "/" + digitos[8:12]
    if len(digitos) > 12:
        mascara += "-" + digitos[12:14]
    return mascara


def format_telefone(value: Any) -> str:
    digitos = only_digits(value)
    if not digitos:
        return ""
    if len(digitos) <= 2:
        return digitos
    ddd, numero = digitos[:2], digitos[2:]
    # Celular (11 dígitos) usa 5 antes do hífen, fixo usa 4
    corte = 5 if len(digitos) == 11 else 4
    if len(numero) > corte:
        numero = f"{numero[:corte]}-{numero[corte:]}"
    return f"({ddd}) {numero}"
