import pytest
from src.r5900_cds.assembler import compile_text
from src.r5900_cds.disassembler import (
    words_from_buffer, parse_cheat_codes, disassemble, disassemble_codes, disassemble_words,
)
from src.r5900_cds.utils import words_to_bytes

def test_words_from_buffer():
    assert words_from_buffer(b"\x01\x00\x08\x25", 0x00100000) == [(0x00100000, 0x25080001)]
    # el resto se rellena con ceros
    assert words_from_buffer(b"\x01") == [(0, 1)]
    assert words_from_buffer(b"") == []

def test_parse_cheat_codes():
    text = "00100000 25080001\n\n// comentario\n00100004 00000000  \n"
    assert parse_cheat_codes(text) == [(0x00100000, 0x25080001), (0x00100004, 0)]
    with pytest.raises(ValueError):
        parse_cheat_codes("00100000 2508")

def test_filas_basicas():
    result = disassemble(b"\x01\x00\x08\x25", 0x00100000)
    row = result.rows[0]
    assert row.label == "func_00100000"
    assert row.mnemonic == "addiu" and row.operands == "t0, t0, $0001"
    assert row.raw == b"\x01\x00\x08\x25"
    assert "Suma inmediata" in row.comment

CALLS = [
    0x0C040008,   # 00100000 jal $00100020
    0x00000000,   # 00100004 nop
    0x03E00008,   # 00100008 jr ra
    0x00000000,   # 0010000C nop
    0x3C080034,   # 00100010 lui t0, $0034
    0x35085678,   # 00100014 ori t0, t0, $5678
    0x8D090010,   # 00100018 lw t1, $0010(t0)
    0x00000000,   # 0010001C nop
    0x27BDFFF0,   # 00100020 addiu sp, sp, -16
    0x03E00008,   # 00100024 jr ra
    0x27BD0010,   # 00100028 addiu sp, sp, 16
]

def _rows():
    return disassemble(words_to_bytes(CALLS), 0x00100000)

def test_llamada_anotada_con_nombre_de_funcion():
    result = _rows()
    jal = result.rows[0]
    assert jal.mnemonic == "jal" and jal.operands == "$00100020"
    assert "(+7) <func_00100020>" in jal.comment
    target = result.rows[8]
    assert target.label == "func_00100020"
    assert target.xrefs == (0x00100000,)
    assert "XREF: $00100000" in target.comment
    assert "Reserva marco de pila" in target.comment
    assert result.functions[0x00100020].callers == [0x00100000]

def test_comentarios_de_puntero_y_registros():
    rows = _rows().rows
    assert "t0 = $00340000" in rows[4].comment
    assert "t0 = $00345678" in rows[5].comment
    assert "ptr $00345688 (4 bytes, code)" in rows[6].comment
    assert _rows().pointers[0x00100018].target == 0x00345688

def test_desconocida_no_rompe():
    result = disassemble(words_to_bytes([0x4C000000]), 0x00100000)
    assert result.rows[0].mnemonic == "unknown"

def test_ida_y_vuelta_con_el_compilador():
    src = "address $00100000\nlp: addiu t0, t0, 1\nbeq t0, zero, :lp\nnop\n"
    result = disassemble_codes(compile_text(src).cheat_code())
    assert [r.mnemonic for r in result.rows] == ["addiu", "beq", "nop"]
    assert result.rows[1].operands == "t0, zero, $00100000"
    assert "(-2)" in result.rows[1].comment

def test_direcciones_no_contiguas():
    result = disassemble_words([(0x00100000, 0x25080001), (0x00200000, 0x03E00008)])
    assert [r.address for r in result.rows] == [0x00100000, 0x00200000]
