import pytest
from src.r5900_cds.decoding import decode, lane_suffix
from src.r5900_cds.encoding import encode
from src.r5900_cds.isa import default_catalog

BASE = 0x00100000

def test_nop_y_desconocidas():
    assert decode(0, BASE).mnemonic == "nop"
    for word in (0x4C000000, 0x00000001, 0x03E10008):   # COP3, funct libre, jr con rt != 0
        d = decode(word, BASE)
        assert d.mnemonic == "unknown" and d.kind == "unknown"

def test_addiu():
    d = decode(0x25080001, BASE)
    assert d.mnemonic == "addiu"
    assert d.operands == "t0, t0, $0001"
    assert d.text == "addiu t0, t0, $0001"
    assert d.kind == "other" and d.dest == 8

def test_comentarios_de_pila_y_retorno():
    assert decode(0x27BDFFF0, BASE).comment == "; Reserva marco de pila"
    assert decode(0x27BD0010, BASE).comment == "; Libera marco de pila"
    ret = decode(0x03E00008, BASE)
    assert ret.operands == "ra" and ret.kind == "jump" and ret.comment == "; Retorno de función"
    assert decode(0xAFBF0000, BASE).comment == "; Guarda dirección de retorno"

def test_jal_anotacion_y_destino():
    d = decode(0x0C040000, 0x00100100)
    assert d.kind == "call" and d.target == 0x00100000
    assert d.operands == "$00100000"
    assert d.annotation == "(-65)"
    assert d.dest == 31
    named = decode(0x0C040000, 0x00100100, functions={0x00100000: "main"})
    assert named.annotation == "(-65) <main>"

def test_jal_usa_el_segmento_del_pc():
    assert decode(0x0C040008, 0x20000000).target == 0x20100020

def test_salto_hacia_atras_cerca_de_cero():
    d = decode(0x1000FFFD, 0)
    assert d.target == 0xFFFFFFF8
    assert d.operands == "zero, zero, $FFFFFFF8"
    assert d.annotation == "(-3)"

def test_ultimo_hueco_del_segmento():
    # el segmento lo fija pc + 4, igual que al codificar
    d = decode(0x08000000, 0x0FFFFFFC)
    assert d.target == 0x10000000
    assert encode("j", "$10000000", address=0x0FFFFFFC) == 0x08000000
    assert encode(d.mnemonic, d.operands, address=0x0FFFFFFC) == 0x08000000

def test_salto_condicional():
    d = decode(0x1100FFFD, 0x00100008)
    assert d.mnemonic == "beq" and d.kind == "branch"
    assert d.target == 0x00100000
    assert d.operands == "t0, zero, $00100000"
    assert d.annotation == "(-3)"

def test_carga():
    d = decode(0x8D280010, BASE)
    assert d.kind == "load" and d.operands == "t0, $0010(t1)"
    assert (d.base, d.offset, d.size, d.dest) == (9, 16, 4, 8)
    s = decode(encode("sw", "t0, -4(sp)"), BASE)
    assert s.kind == "store" and s.offset == -4 and s.dest is None

def test_formas_abreviadas():
    assert decode(0x01090018, BASE).text == "mult t0, t1"
    assert decode(0x0320F809, BASE).text == "jalr t9"
    assert decode(0x0000000C, BASE).text == "syscall"

def test_vu0_carriles():
    assert decode(0x4BC31068, BASE).text == "vadd.xyz vf1, vf2, vf3"
    assert decode(0x4BE31068, BASE).mnemonic == "vadd.xyzw"
    # la máscara vacía se escribe .0 para que la palabra vuelva igual
    assert decode(0x4A031068, BASE).mnemonic == "vadd.0"
    assert lane_suffix(0b1010) == "xz" and lane_suffix(0) == "0"
    for word in (0x4A031068, 0x4A107480):
        d = decode(word, BASE)
        assert encode(d.mnemonic, d.operands, address=BASE) == word

@pytest.mark.parametrize("line", [
    "addiu t0, t0, -1",
    "lui a0, $8000",
    "lq a1, $0020(sp)",
    "sq ra, -16(sp)",
    "mtc1 t0, f12",
    "add.s f0, f1, f2",
    "c.lt.s f3, f4",
    "vmulaw.xyz ACC, vf4, vf5w",
    "vmaddq.xy vf1, vf2, Q",
    "vdiv Q, vf1x, vf2w",
    "vlqi.xyzw vf3, (vi4++)",
    "viaddi vi1, vi2, -3",
    "pmfhl.lw t0",
    "paddw t0, t1, t2",
    "psravw t0, t1, t2",
    "dsll32 t0, t1, 31",
])
def test_ida_y_vuelta(line):
    mnemonic, _, operands = line.partition(" ")
    word = encode(mnemonic, operands, address=BASE)
    d = decode(word, BASE)
    assert encode(d.mnemonic, d.operands, address=BASE) == word

@pytest.mark.parametrize("idef", [i for i in default_catalog() if i.mnemonic not in ("nop", "sll")],
                         ids=lambda i: i.mnemonic)
def test_ida_y_vuelta_de_todo_el_catalogo(idef):
    word = idef.pattern | ((0xF << idef.fields["dest"][0]) if idef.has_dest else 0)
    d = decode(word, BASE)
    assert d.mnemonic.split(".")[0] == idef.mnemonic.split(".")[0]
    assert encode(d.mnemonic, d.operands, address=BASE) == word
