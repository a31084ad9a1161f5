import json
import pytest
from src.r5900_cds.assembler import compile_text, compile_file, main
from src.r5900_cds.diagnostics import collect

def _loader(files):
    def load(path):
        if path not in files:
            raise FileNotFoundError(path)
        return files[path]
    return load

def test_hexcode_minimo():
    result = compile_text("address $00100000\nhexcode $DEADBEEF")
    assert result.ok
    assert result.cheat_code() == "00100000 DEADBEEF"
    assert result.codes == [(0x00100000, 0xDEADBEEF)]

def test_bucle():
    src = "address $00100000\nlp: addiu t0, t0, 1\nbeq t0, zero, :lp\nnop\n"
    result = compile_text(src)
    assert result.cheat_code().split("\n") == ["00100000 25080001", "00100004 1100FFFE", "00100008 00000000"]

def test_traza_de_depuracion():
    result = compile_text("address $00100000\nhexcode $DEADBEEF")
    assert result.debug_trace() == [
        "[Line #1]\tAddress\t[address $00100000]",
        "[Line #2]\tHexCode\t[hexcode $DEADBEEF]",
        ">>00100000 DEADBEEF",
    ]

def test_compilar_dos_veces_da_lo_mismo():
    src = "address $00100000\nsetreg a0, $80001234\nmem[0x8] a0 += 2\n"
    assert compile_text(src).cheat_code() == compile_text(src).cheat_code()

def test_include_se_añade_detras():
    files = {"/p/lib.cds": "address $00200000\nhexcode $22222222"}
    src = 'include "lib.cds"\naddress $00100000\nhexcode $11111111\n'
    result = compile_text(src, "/p/main.cds", loader=_loader(files))
    assert result.ok
    assert result.cheat_code() == "00100000 11111111\n00200000 22222222"

def test_include_con_etiquetas_propias():
    files = {"/p/lib.cds": "lp: nop\nj :lp"}
    src = 'lp: nop\ninclude "lib.cds"\n'
    result = compile_text(src, "/p/main.cds", loader=_loader(files))
    assert result.ok
    assert not [d for d in result.diagnostics if d.severity == "advertencia"]

def test_include_ciclico():
    files = {"/p/a.cds": 'include "main.cds"\nhexcode $1'}
    result = compile_text('include "a.cds"', "/p/main.cds", loader=_loader(files))
    assert not result.ok
    errs = [d for d in result.diagnostics if d.is_error]
    assert len(errs) == 1
    assert errs[0].message == "Inclusión cíclica" and errs[0].file == "/p/a.cds"
    assert result.codes == [(0, 1)]

def test_include_de_si_mismo():
    result = compile_text('include "main.cds"', "/p/main.cds", loader=_loader({}))
    assert [d.message for d in result.diagnostics if d.is_error] == ["Inclusión cíclica"]

def test_include_inexistente():
    result = compile_text('include "nada.cds"', "/p/main.cds", loader=_loader({}))
    assert not result.ok
    assert "No se pudo leer el include" in result.diagnostics[0].message

def test_sink_recibe_todo():
    seen = []
    result = compile_text("lp: nop\nbeq t0, t1, :lp\n%%%\n", sink=collect(seen))
    assert seen == result.diagnostics
    assert {d.severity for d in seen} >= {"error", "advertencia", "depuracion"}

def test_compile_file_con_include_real(tmp_path):
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "lib.cds").write_text("address $00200000\nstring \"Hi\"\n", encoding="utf-8")
    main_src = tmp_path / "main.cds"
    main_src.write_text('address $00100000\nhexcode $1\ninclude "sub/lib.cds"\n', encoding="utf-8")
    result = compile_file(str(main_src))
    assert result.ok
    assert result.cheat_code() == "00100000 00000001\n00200000 00006948"

# ---------------- CLI ----------------

def test_cli_compile_ok(tmp_path):
    src = tmp_path / "p.cds"
    src.write_text("address $00100000\nhexcode $DEADBEEF\n", encoding="utf-8")
    out = tmp_path / "p.txt"
    assert main(["compile", str(src), "-o", str(out)]) == 0
    assert out.read_text(encoding="utf-8") == "00100000 DEADBEEF"

def test_cli_compile_json(tmp_path, capsys):
    src = tmp_path / "p.cds"
    src.write_text("address $00100000\nhexcode $DEADBEEF\n", encoding="utf-8")
    assert main(["compile", str(src), "--json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["cheatCodes"] == "00100000 DEADBEEF"
    assert payload["debugMessages"][-1] == ">>00100000 DEADBEEF"

def test_cli_codigos_de_salida(tmp_path):
    assert main(["compile", str(tmp_path / "no_existe.cds")]) == 2
    bad = tmp_path / "bad.cds"
    bad.write_text("addiu t0, q9, 1\n", encoding="utf-8")
    assert main(["compile", str(bad)]) == 1
    good = tmp_path / "good.cds"
    good.write_text("nop\n", encoding="utf-8")
    # un directorio no se puede abrir para escritura
    assert main(["compile", str(good), "-o", str(tmp_path)]) == 3

def test_cli_decompile_binario(tmp_path, capsys):
    binary = tmp_path / "code.bin"
    binary.write_bytes(bytes.fromhex("01000825") + bytes.fromhex("0800e003"))
    assert main(["decompile", str(binary), "--base", "$00100000"]) == 0
    out = capsys.readouterr().out
    assert "func_00100000:" in out
    assert "00100000  01 00 08 25  addiu" in out
    assert "jr" in out

def test_cli_decompile_codigos(tmp_path):
    codes = tmp_path / "codes.txt"
    codes.write_text("00100000 25080001\n00100004 03E00008\n", encoding="utf-8")
    out = tmp_path / "listado.txt"
    assert main(["decompile", str(codes), "--codes", "-o", str(out)]) == 0
    assert "Retorno de función" in out.read_text(encoding="utf-8")
    codes.write_text("esto no es un código\n", encoding="utf-8")
    assert main(["decompile", str(codes), "--codes"]) == 2

def test_cli_sin_subcomando():
    with pytest.raises(SystemExit):
        main([])
