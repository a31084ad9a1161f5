import pytest
from src.r5900_cds.lexer import strip_comment, split_mnemonic_operands, classify, scan_lines

# --- strip_comment ---
@pytest.mark.parametrize("src, expected", [
    ("addiu t0, t0, 1 // cmt", "addiu t0, t0, 1"),
    ('string "a//b" // cmt', 'string "a//b"'),
    ("// full comment", ""),
    ("   nop   ", "nop"),
    ("", ""),
    ("nop /* c */", "nop"),
    ('string "a/*b" /* c */', 'string "a/*b"'),
])
def test_strip_comment(src, expected):
    assert strip_comment(src) == expected

# --- split_mnemonic_operands ---
@pytest.mark.parametrize("src, mn, tail", [
    ("ADDIU t0, t0, 1", "addiu", "t0, t0, 1"),
    ("nop", "nop", ""),
    ("   ", "", ""),
])
def test_split_mnemonic_operands(src, mn, tail):
    assert split_mnemonic_operands(src) == (mn, tail)

# --- classify ---
@pytest.mark.parametrize("text, kind", [
    ('include "lib/util.cds"', "include"),
    ("address $00100000", "address"),
    ("ADDRESS $2000", "address"),
    ("hexcode $DEADBEEF", "hexcode"),
    ("mem[0x10] t0 += 5", "mem"),
    ("setreg t0, $12345678", "setreg"),
    ("lp: addiu t0, t0, 1", "label"),
    ('string "Hola"', "string"),
    ("beq t0, zero, :lp", "operation"),
    ("vadd.xyz vf1, vf2, vf3", "operation"),
    ("%%%", "unknown"),
])
def test_classify_kinds(text, kind):
    assert classify(text)[0] == kind

def test_classify_groups():
    _, m = classify('include "lib/util.cds"')
    assert m.group("path") == "lib/util.cds"
    _, m = classify("mem[0x10] t0 += 5")
    assert (m.group("offset"), m.group("reg"), m.group("op"), m.group("value")) == ("0x10", "t0", "+=", "5")
    _, m = classify("lp: addiu t0, t0, 1")
    assert m.group(1) == "lp" and m.group(2) == "addiu t0, t0, 1"
    _, m = classify("beq t0, zero, :lp")
    assert m.group("cmd") == "beq" and m.group("args") == "t0, zero," and m.group("label") == "lp"
    _, m = classify("j :lp")
    assert m.group("cmd") == "j" and not m.group("args") and m.group("label") == "lp"
    _, m = classify('string "Hola Mundo"')
    assert m.group("text") == "Hola Mundo"

def test_classify_mem_mal_formado():
    assert classify("mem[0x10 t0 = 1") == ("mem", None)

def test_scan_lines_comentarios():
    src = "/* a\n b */\n// c\n\nnop // d\n/* una */\n"
    lines = list(scan_lines(src))
    assert [l.kind for l in lines] == ["multi_comment", "multi_comment", "comment", "operation", "multi_comment"]
    assert [l.number for l in lines] == [1, 2, 3, 5, 6]
    assert lines[3].text == "nop"
    assert lines[3].raw == "nop // d"

def test_scan_lines_bloque_tras_codigo():
    src = "nop /* c */\naddiu t0, t0, 1 /* abre\nsigue\ncierra */\njr ra\n"
    lines = list(scan_lines(src))
    assert [l.kind for l in lines] == ["operation", "operation", "multi_comment", "multi_comment", "operation"]
    assert lines[0].text == "nop" and lines[1].text == "addiu t0, t0, 1"
    assert lines[4].text == "jr ra"
