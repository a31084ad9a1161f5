from src.r5900_cds.assembler import compile_text
from src.r5900_cds.writers import to_cheat_lines

def test_e2e_patch():
    src = """
    /* Parche de ejemplo */
    address $00100000
    string "Hi"                 // 1 palabra
    setreg a0, $00100000
    mem[0x4] a0 = 7
    hexcode $DEADBEEF
    """
    result = compile_text(src, "patch.cds")
    assert result.ok
    assert to_cheat_lines(result.nodes) == [
        "00100000 00006948",   # "Hi\0\0"
        "00100004 3C040010",   # lui a0, $0010
        "00100008 24840000",   # addiu a0, a0, $0000
        "0010000C 34190007",   # ori t9, zero, $0007
        "00100010 AC990004",   # sw t9, $0004(a0)
        "00100014 DEADBEEF",
    ]
