import re

_NON_DIGITS = re.compile(r'[^0-9]')

# Формально проходят контрольную сумму, но недействительны
_REPEATED_DIGITS = frozenset(str(d) * 11 for d in range(10))


def normalize_cpf(cpf: str) -> str:
    """Убирает всё, кроме цифр: '123.456.789-09' -> '12345678909'."""
    return _NON_DIGITS.sub('', cpf)


def _check_digit(digits: str, weight_start: int) -> int:
    total = sum(int(d) * (weight_start - i) for i, d in enumerate(digits))
    remainder = total % 11
    return 0 if remainder < 2 else 11 - remainder


def validate_cpf(cpf: str) -> bool:
    """Проверка бразильского CPF: 11 цифр и две контрольные цифры по модулю 11."""
    cpf = normalize_cpf(cpf)

    if len(cpf) != 11:
        return False

    if cpf in _REPEATED_DIGITS:
        return False

    if int(cpf[9]) != _check_digit(cpf[:9], 10):
        return False

    return int(cpf[10]) == _check_digit(cpf[:10], 11)
