from financeiro.tax_ids import format_tax_id, is_valid_cnpj, is_valid_cpf, only_digits


def test_only_digits():
    assert only_digits("111.444.777-35") == "11144477735"
    assert only_digits(None) == ""


def test_cpf_validation():
    assert is_valid_cpf("111.444.777-35")
    assert not is_valid_cpf("111.444.777-36")
    assert not is_valid_cpf("111.111.111-11")
    assert not is_valid_cpf("1234")


def test_cnpj_validation():
    assert is_valid_cnpj("11.222.333/0001-81")
    assert not is_valid_cnpj("11222333000182")
    assert not is_valid_cnpj("00000000000000")


def test_format_tax_id():
    assert format_tax_id("11144477735") == "111.444.777-35"
    assert format_tax_id("11222333000181") == "11.222.333/0001-81"
    assert format_tax_id(" 123 ") == "123"
