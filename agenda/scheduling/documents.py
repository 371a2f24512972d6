import re


def only_digits(value) -> str:
    return re.sub(r"\D", "", str(value or ""))


def validate_cpf(cpf: str) -> bool:
    """CPF: 11 dígitos com os dois dígitos verificadores corretos."""
    cpf = only_digits(cpf)

    if len(cpf) != 11:
        return False

    # 000.000.000-00, 111.111.111-11 ... passam na conta mas não existem
    if cpf == cpf[0] * 11:
        return False

    for t in (9, 10):
        total = sum(int(cpf[c]) * ((t + 1) - c) for c in range(t))
        digit = ((10 * total) % 11) % 10
        if int(cpf[t]) != digit:
            return False

    return True


def validate_rf(rf: str) -> bool:
    """RF (registro funcional): exatamente 7 dígitos."""
    return len(only_digits(rf)) == 7
