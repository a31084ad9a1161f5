import pytest
from src.r5900_cds.regs import build_register_banks, vu_reg_num, GPR_NAMES

def test_bancos_completos():
    banks = build_register_banks()
    assert set(banks) == {"gpr", "cop0", "cop1"}
    for regs in banks.values():
        assert [r.ordinal for r in regs] == list(range(32))

def test_gpr_codificacion():
    sp = build_register_banks()["gpr"][29]
    assert sp.name == "sp"
    assert sp.binary == "11101"
    assert sp.description == "Puntero de pila"
    assert GPR_NAMES[31] == "ra"

def test_cop0_y_cop1():
    banks = build_register_banks()
    assert banks["cop0"][12].name == "Status"
    assert banks["cop0"][14].name == "EPC"
    assert banks["cop1"][31].name == "f31"

@pytest.mark.parametrize("token, prefix, n", [("vf12", "vf", 12), ("VI3", "vi", 3), ("vf0", "vf", 0)])
def test_vu_reg_num(token, prefix, n):
    assert vu_reg_num(token, prefix) == n

@pytest.mark.parametrize("token, prefix", [("vf32", "vf"), ("vi1", "vf"), ("t0", "vi")])
def test_vu_reg_num_invalido(token, prefix):
    with pytest.raises(ValueError):
        vu_reg_num(token, prefix)
