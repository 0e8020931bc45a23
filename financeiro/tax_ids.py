import re


def only_digits(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def _repeated(digits: str) -> bool:
    return digits == digits[0] * len(digits)


def is_valid_cpf(value: str) -> bool:
    digits = only_digits(value)
    if len(digits) != 11:
        return False
    if _repeated(digits):
        return False
    for i in range(9, 11):
        total = sum(int(digits[num]) * ((i + 1) - num) for num in range(i))
        check = (total * 10) % 11
        if check == 10:
            check = 0
        if check != int(digits[i]):
            return False
    return True


def is_valid_cnpj(value: str) -> bool:
    digits = only_digits(value)
    if len(digits) != 14:
        return False
    if _repeated(digits):
        return False
    weights_1 = [5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]
    weights_2 = [6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]
    total_1 = sum(int(d) * w for d, w in zip(digits[:12], weights_1))
    rem_1 = total_1 % 11
    check_1 = 0 if rem_1 < 2 else 11 - rem_1
    total_2 = sum(int(d) * w for d, w in zip(digits[:13], weights_2))
    rem_2 = total_2 % 11
    check_2 = 0 if rem_2 < 2 else 11 - rem_2
    return digits[12] == str(check_1) and digits[13] == str(check_2)


def format_cpf(cpf: str) -> str:
    cpf = only_digits(cpf)
    return f"{cpf[:3]}.{cpf[3:6]}.{cpf[6:9]}-{cpf[9:]}"


def format_cnpj(cnpj: str) -> str:
    cnpj = only_digits(cnpj)
    return f"{cnpj[:2]}.{cnpj[2:5]}.{cnpj[5:8]}/{cnpj[8:12]}-{cnpj[12:]}"


def format_tax_id(value: str) -> str:
    """Format an 11-digit CPF or 14-digit CNPJ; anything else is returned as typed."""
    digits = only_digits(value)
    if len(digits) == 11:
        return format_cpf(digits)
    if len(digits) == 14:
        return format_cnpj(digits)
    return (value or "").strip()
