import pytest
from src.r5900_cds.encoding import (
    encode, encode_line, resolve_mnemonic, dest_mask, form_regex,
    EncodeError, UnknownMnemonic, UnknownRegister, MalformedImmediate, OperandMismatch, FieldOverflow,
)
from src.r5900_cds.isa import default_catalog

@pytest.mark.parametrize("mnemonic, operands, word", [
    ("addiu", "t0, t0, 1", 0x25080001),
    ("ADDIU", "T0, T0, $1", 0x25080001),
    ("addiu", "t0, t0, -1", 0x2508FFFF),
    ("addiu", "sp, sp, -16", 0x27BDFFF0),
    ("lui", "t0, $1234", 0x3C081234),
    ("ori", "t9, zero, $0007", 0x34190007),
    ("jr", "ra", 0x03E00008),
    ("jalr", "t9", 0x0320F809),
    ("jalr", "ra, t9", 0x0320F809),
    ("mult", "t0, t1", 0x01090018),
    ("syscall", "", 0x0000000C),
    ("sw", "ra, 0(sp)", 0xAFBF0000),
    ("sw", "ra, (sp)", 0xAFBF0000),
    ("lw", "t0, $0010(t1)", 0x8D280010),
    ("sw", "t9, $0004(a0)", 0xAC990004),
    ("mfc0", "t0, Status", 0x40086000),
    ("mfc0", "t0, $12", 0x40086000),
    ("sra", "t1, t0, 2", 0x00084883),
    ("nop", "", 0x00000000),
])
def test_encode_known_words(mnemonic, operands, word):
    assert encode(mnemonic, operands) == word

def test_encode_vu0_dest_mask():
    assert encode("vadd.xyz", "vf1, vf2, vf3") == 0x4BC31068
    # sin sufijo se escriben los cuatro carriles
    assert encode("vadd", "vf1, vf2, vf3") == 0x4BE31068
    assert dest_mask("xw") == 0b1001
    # .0 es la máscara vacía
    assert dest_mask("0") == 0
    assert encode("vadd.0", "vf1, vf2, vf3") == 0x4A031068

def test_resolve_mnemonic_lanes():
    idef, dest = resolve_mnemonic("vmul.yz", default_catalog())
    assert idef.mnemonic == "vmul" and dest == 0b0110
    with pytest.raises(UnknownMnemonic):
        resolve_mnemonic("vadd.xzy", default_catalog())
    with pytest.raises(UnknownMnemonic):
        resolve_mnemonic("addiu.x", default_catalog())

def test_jal_target_and_segment():
    assert encode("jal", "$00100000", address=0x00100100) == 0x0C040000
    with pytest.raises(FieldOverflow):
        encode("j", "$10000000", address=0x00100000)
    with pytest.raises(MalformedImmediate):
        encode("j", "$00100002")

def test_branch_raw_count_and_absolute_target():
    assert encode("beq", "t0, zero, $FFFE") == 0x1100FFFE
    assert encode("beq", "t0, zero, $00100000", address=0x00100008) == 0x1100FFFD
    with pytest.raises(MalformedImmediate):
        encode("beq", "t0, zero, $00100002", address=0x00100008)
    with pytest.raises(FieldOverflow):
        encode("beq", "t0, zero, $00300000", address=0x00100000)

@pytest.mark.parametrize("mnemonic, operands, exc", [
    ("foo", "t0", UnknownMnemonic),
    ("addiu", "t0, t0, $10000", FieldOverflow),
    ("addiu", "t0, q9, 1", UnknownRegister),
    ("addiu", "t0, t0", OperandMismatch),
    ("addiu", "t0, t0, $zz", MalformedImmediate),
    ("sll", "t0, t0, 32", FieldOverflow),
    ("vadd", "vf1, vf2, vf40", UnknownRegister),
])
def test_encode_errors(mnemonic, operands, exc):
    with pytest.raises(exc) as info:
        encode(mnemonic, operands)
    assert isinstance(info.value, EncodeError)
    assert isinstance(info.value, ValueError)
    assert info.value.token

def test_encode_line():
    assert encode_line("addiu t0, t0, 1") == 0x25080001
    with pytest.raises(UnknownMnemonic):
        encode_line("   ")

def test_form_regex_tolera_espacios():
    m = form_regex("{rt}, {offset}({base})").fullmatch("t0 ,$10 ( t1 )")
    assert m and m.group("rt") == "t0" and m.group("offset") == "$10" and m.group("base") == "t1"
