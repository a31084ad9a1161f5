from src.r5900_cds.linker import build_label_map
from src.r5900_cds.parser import parse
from src.r5900_cds.ast import (
    HexCode, Operation, OperationBranch, OperationJump, SetReg, String, Memory,
    Include, SingleLineComment, MultiLineComment,
)

def _parse(src, **kw):
    link = build_label_map(src, **kw)
    return parse(src, link.labels, **kw)

LOOP = """
address $00100000
lp: addiu t0, t0, 1
beq t0, zero, :lp
j :lp
nop
"""

def test_bucle_con_etiqueta():
    nodes, diags = _parse(LOOP)
    assert not [d for d in diags if d.is_error]
    kinds = [type(n).__name__ for n in nodes]
    assert kinds == ["Address", "Label", "Operation", "OperationBranch", "OperationJump", "Operation"]
    beq = nodes[3]
    assert isinstance(beq, OperationBranch)
    assert beq.address == 0x00100004
    assert beq.offset == -2 and beq.target == 0x00100000 and beq.label == "lp"
    assert beq.operands == "t0, zero, $FFFE"
    assert beq.word == 0x1100FFFE
    j = nodes[4]
    assert isinstance(j, OperationJump)
    assert j.operands == "$00100000" and j.word == 0x08040000

def test_ley_del_desplazamiento():
    src = "address $00100000\nbne t0, t1, :fin\nnop\nnop\nfin: nop\n"
    nodes, _ = _parse(src)
    bne = next(n for n in nodes if isinstance(n, OperationBranch))
    assert bne.target == bne.address + 4 + 4 * bne.offset
    assert bne.offset == 2

def test_resolucion_de_saltos_en_depuracion():
    _, diags = _parse(LOOP)
    assert any(d.severity == "depuracion" and "beq -> lp" in d.message for d in diags)

def test_etiqueta_no_definida():
    nodes, diags = _parse("beq t0, zero, :nada\n")
    assert [d.message for d in diags if d.is_error] == ["Etiqueta no definida"]
    assert not any(isinstance(n, Operation) for n in nodes)

def test_etiqueta_en_instruccion_sin_destino():
    _, diags = _parse("lp: nop\naddiu t0, t0, :lp\n")
    assert any(d.is_error and d.token == "lp" for d in diags)

def test_error_no_desplaza_lo_que_sigue():
    src = "address $00100000\naddiu t0, q9, 1\nhexcode $11111111\n"
    nodes, diags = _parse(src, file="err.cds")
    errors = [d for d in diags if d.is_error]
    assert len(errors) == 1
    assert errors[0].line == 2 and errors[0].token == "q9" and errors[0].file == "err.cds"
    hc = next(n for n in nodes if isinstance(n, HexCode))
    assert hc.address == 0x00100004

def test_linea_no_reconocida():
    _, diags = _parse("%%%\n")
    assert [d.message for d in diags if d.is_error] == ["Línea no reconocida"]

def test_setreg_y_mem():
    src = "address $00100000\nsetreg t1, $12345678\nmem[0x10] t0 = 1\n"
    nodes, diags = _parse(src)
    assert not [d for d in diags if d.is_error]
    sr = next(n for n in nodes if isinstance(n, SetReg))
    assert sr.words() == ((0x00100000, 0x3C091234), (0x00100004, 0x25295678))
    mem = next(n for n in nodes if isinstance(n, Memory))
    assert mem.address == 0x00100008
    assert mem.words() == ((0x00100008, 0x34190001), (0x0010000C, 0xAD190010))

def test_errores_de_mem():
    for line in ("mem[10] t0 = 1", "mem[0x10] q9 = 1", "mem[0x10] t0 %= 1", "mem[0x10] t0 /= 3", "mem[0x10 t0 = 1"):
        _, diags = _parse(line)
        assert any(d.is_error for d in diags), line

def test_mem_rechaza_desplazamientos_negativos():
    nodes, diags = _parse("mem[0xFFFF] t0 = 1")
    assert not any(isinstance(n, Memory) for n in nodes)
    errors = [d for d in diags if d.is_error]
    assert len(errors) == 1
    assert "0x7FFF" in errors[0].message and errors[0].token == "0xFFFF"
    nodes, diags = _parse("mem[0x7FFF] t0 = 1")
    assert not diags
    mem = next(n for n in nodes if isinstance(n, Memory))
    assert mem.words()[1][1] == 0xAD197FFF

def test_string_include_y_comentarios():
    src = '// hola\n/* a\nb */\ninclude "otro.cds"\nstring "Hola Mundo"\n'
    nodes, diags = _parse(src)
    assert not diags
    assert [type(n) for n in nodes] == [SingleLineComment, MultiLineComment, MultiLineComment, Include, String]
    assert nodes[3].path == "otro.cds"
    s = nodes[4]
    assert s.value == "Hola Mundo"
    assert [hc.address for hc in s.codes] == [0, 4, 8]

def test_mayusculas_y_base():
    nodes, diags = _parse("ADDIU T0, T0, 1\nHEXCODE $1\n", base_address=0x00300000)
    assert not diags
    assert nodes[0].word == 0x25080001 and nodes[0].address == 0x00300000
    assert isinstance(nodes[1], HexCode) and nodes[1].address == 0x00300004

def test_comentario_de_bloque_tras_instruccion():
    nodes, diags = _parse("nop /* c */\naddiu t0, t0, 1\n")
    assert not diags
    ops = [n for n in nodes if isinstance(n, Operation)]
    assert [op.address for op in ops] == [0, 4]
