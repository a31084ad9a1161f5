'''
tabla formal del EE (MIPS R5900): opcodes, plantillas de bits, formas de operandos
'''

from __future__ import annotations
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Iterable, Iterator, List, Literal, Optional, Tuple

from .regs import GPR_ALIASES, Register, RegKind, build_register_banks

Category = Literal["branch", "jump", "other"]

# Ancho en bits de cada campo que puede aparecer en una plantilla
FIELD_WIDTHS: Dict[str, int] = {
    "rs": 5, "rt": 5, "rd": 5, "base": 5, "sa": 5, "stype": 5, "op": 5,
    "immediate": 16, "offset": 16, "target": 26, "code": 20,
    "reg": 5, "fs": 5, "ft": 5, "fd": 5,
    "dest": 4, "vft": 5, "vfs": 5, "vfd": 5, "vit": 5, "vis": 5, "vid": 5,
    "fsf": 2, "ftf": 2, "imm5": 5, "imm15": 15,
}

# Tipo de marcador (placeholder) de cada campo
FIELD_KINDS: Dict[str, str] = {
    "rs": "gpr", "rt": "gpr", "rd": "gpr", "base": "gpr",
    "reg": "cop0", "fs": "cop1", "ft": "cop1", "fd": "cop1",
    "vft": "vf", "vfs": "vf", "vfd": "vf", "vit": "vi", "vis": "vi", "vid": "vi",
    "fsf": "lane", "ftf": "lane", "dest": "dest",
    "sa": "shift", "stype": "shift", "op": "shift", "code": "code",
    "immediate": "imm", "offset": "offset", "target": "target",
    "imm5": "simm", "imm15": "imm",
}

LANES = "xyzw"

@dataclass(frozen=True)
class InstructionArg:
    kind: str
    width: int

@dataclass(frozen=True)
class InstructionDef:
    """Definición de una instrucción del EE.

    - template: cadena de campos de MSB a LSB, p.ej. "001001 {rs} {rt} {immediate}"
    - forms: formas de operandos aceptadas; la primera es la canónica
    - defaults: valor de los campos que omite una forma abreviada
    - pattern/mask: bits fijos de la plantilla (mask=1 donde el bit es fijo)
    - fields: nombre -> (bit menos significativo, ancho)
    """
    mnemonic: str
    template: str
    forms: Tuple[str, ...]
    category: Category = "other"
    description: str = ""
    defaults: Dict[str, int] = field(default_factory=dict)
    pattern: int = 0
    mask: int = 0
    fields: Dict[str, Tuple[int, int]] = field(default_factory=dict)

    @property
    def syntax(self) -> str:
        return self.forms[0]

    @property
    def args(self) -> List[InstructionArg]:
        out = []
        for name, (_lo, width) in self.fields.items():
            kind = FIELD_KINDS[name]
            if name == "offset" and self.category == "branch":
                kind = "branch"
            out.append(InstructionArg(kind, width))
        return out

    @property
    def has_dest(self) -> bool:
        return "dest" in self.fields

    def matches(self, word: int) -> bool:
        return (word & self.mask) == self.pattern

    def extract(self, word: int) -> Dict[str, int]:
        """Valores crudos (sin signo) de cada campo de la palabra."""
        return {n: (word >> lo) & ((1 << w) - 1) for n, (lo, w) in self.fields.items()}

    def assemble(self, values: Dict[str, int]) -> int:
        """Pliega los valores de campo en la plantilla (se asumen ya validados)."""
        word = self.pattern
        for n, (lo, w) in self.fields.items():
            word |= (values.get(n, 0) & ((1 << w) - 1)) << lo
        return word & 0xFFFFFFFF

def _compile_template(template: str) -> Tuple[int, int, Dict[str, Tuple[int, int]]]:
    pattern = mask = 0
    fields: Dict[str, Tuple[int, int]] = {}
    pos = 32
    for tok in template.split():
        if tok.startswith("{") and tok.endswith("}"):
            name = tok[1:-1]
            width = FIELD_WIDTHS[name]
            pos -= width
            fields[name] = (pos, width)
        else:
            if set(tok) - {"0", "1"}:
                raise ValueError(f"Plantilla inválida: {template!r}")
            pos -= len(tok)
            pattern |= int(tok, 2) << pos
            mask |= ((1 << len(tok)) - 1) << pos
    if pos != 0:
        raise ValueError(f"La plantilla no suma 32 bits: {template!r}")
    return pattern, mask, fields

# ---------------- Tabla del EE ----------------

_TABLE: List[InstructionDef] = []

def _add(name: str, template: str, forms, *, cat: Category = "other",
         desc: str = "", defaults: Optional[Dict[str, int]] = None) -> None:
    if isinstance(forms, str):
        forms = (forms,)
    pattern, mask, fields = _compile_template(template)
    _TABLE.append(InstructionDef(name, template, tuple(forms), cat, desc,
                                 dict(defaults or {}), pattern, mask, fields))

def _layout(form: str, parts: Iterable[str]) -> str:
    """Sustituye por ceros los campos de registro que la forma no menciona."""
    out = []
    for p in parts:
        if p.startswith("{") and p != "{dest}" and p not in form:
            out.append("0" * FIELD_WIDTHS[p[1:-1]])
        else:
            out.append(p)
    return " ".join(out)

def _b(bits: int, width: int) -> str:
    return format(bits, f"0{width}b")

# nop es la palabra cero (sll zero, zero, 0)
_add("nop", "000000 00000 00000 00000 00000 000000", "", desc="Sin operación")

# SPECIAL (opcode 0, campo funct)
for _n, _f in (("sll", 0x00), ("srl", 0x02), ("sra", 0x03),
               ("dsll", 0x38), ("dsrl", 0x3A), ("dsra", 0x3B),
               ("dsll32", 0x3C), ("dsrl32", 0x3E), ("dsra32", 0x3F)):
    _add(_n, f"000000 00000 {{rt}} {{rd}} {{sa}} {_b(_f, 6)}", "{rd}, {rt}, {sa}", desc="Desplazamiento")
for _n, _f in (("sllv", 0x04), ("srlv", 0x06), ("srav", 0x07),
               ("dsllv", 0x14), ("dsrlv", 0x16), ("dsrav", 0x17)):
    _add(_n, f"000000 {{rs}} {{rt}} {{rd}} 00000 {_b(_f, 6)}", "{rd}, {rt}, {rs}", desc="Desplazamiento variable")

_add("jr", "000000 {rs} 00000 00000 00000 001000", "{rs}", cat="jump", desc="Salto a registro")
_add("jalr", "000000 {rs} 00000 {rd} 00000 001001", ("{rd}, {rs}", "{rs}"), cat="jump",
     desc="Llamada a registro", defaults={"rd": 31})
_add("movz", "000000 {rs} {rt} {rd} 00000 001010", "{rd}, {rs}, {rt}", desc="Mueve si cero")
_add("movn", "000000 {rs} {rt} {rd} 00000 001011", "{rd}, {rs}, {rt}", desc="Mueve si no cero")
_add("syscall", "000000 {code} 001100", ("{code}", ""), desc="Llamada al sistema", defaults={"code": 0})
_add("break", "000000 {code} 001101", ("{code}", ""), desc="Punto de ruptura", defaults={"code": 0})
_add("sync", "000000 00000 00000 00000 {stype} 001111", ("{stype}", ""), desc="Sincroniza memoria",
     defaults={"stype": 0})
_add("mfhi", "000000 00000 00000 {rd} 00000 010000", "{rd}", desc="Lee HI")
_add("mthi", "000000 {rs} 00000 00000 00000 010001", "{rs}", desc="Escribe HI")
_add("mflo", "000000 00000 00000 {rd} 00000 010010", "{rd}", desc="Lee LO")
_add("mtlo", "000000 {rs} 00000 00000 00000 010011", "{rs}", desc="Escribe LO")
_add("mult", "000000 {rs} {rt} {rd} 00000 011000", ("{rd}, {rs}, {rt}", "{rs}, {rt}"),
     desc="Multiplica", defaults={"rd": 0})
_add("multu", "000000 {rs} {rt} {rd} 00000 011001", ("{rd}, {rs}, {rt}", "{rs}, {rt}"),
     desc="Multiplica sin signo", defaults={"rd": 0})
_add("div", "000000 {rs} {rt} 00000 00000 011010", "{rs}, {rt}", desc="Divide")
_add("divu", "000000 {rs} {rt} 00000 00000 011011", "{rs}, {rt}", desc="Divide sin signo")
for _n, _f, _d in (("add", 0x20, "Suma"), ("addu", 0x21, "Suma sin desbordamiento"),
                   ("sub", 0x22, "Resta"), ("subu", 0x23, "Resta sin desbordamiento"),
                   ("and", 0x24, "AND lógico"), ("or", 0x25, "OR lógico"),
                   ("xor", 0x26, "XOR lógico"), ("nor", 0x27, "NOR lógico"),
                   ("slt", 0x2A, "Fija si menor"), ("sltu", 0x2B, "Fija si menor sin signo"),
                   ("dadd", 0x2C, "Suma doble palabra"), ("daddu", 0x2D, "Suma doble palabra"),
                   ("dsub", 0x2E, "Resta doble palabra"), ("dsubu", 0x2F, "Resta doble palabra")):
    _add(_n, f"000000 {{rs}} {{rt}} {{rd}} 00000 {_b(_f, 6)}", "{rd}, {rs}, {rt}", desc=_d)
_add("mfsa", "000000 00000 00000 {rd} 00000 101000", "{rd}", desc="Lee SA")
_add("mtsa", "000000 {rs} 00000 00000 00000 101001", "{rs}", desc="Escribe SA")
for _n, _f in (("tge", 0x30), ("tgeu", 0x31), ("tlt", 0x32), ("tltu", 0x33), ("teq", 0x34), ("tne", 0x36)):
    _add(_n, f"000000 {{rs}} {{rt}} 0000000000 {_b(_f, 6)}", "{rs}, {rt}", desc="Trampa condicional")

# REGIMM (opcode 1, campo rt)
for _n, _r in (("bltz", 0x00), ("bgez", 0x01), ("bltzl", 0x02), ("bgezl", 0x03),
               ("bltzal", 0x10), ("bgezal", 0x11), ("bltzall", 0x12), ("bgezall", 0x13)):
    _add(_n, f"000001 {{rs}} {_b(_r, 5)} {{offset}}", "{rs}, {offset}", cat="branch", desc="Salto condicional")
for _n, _r in (("tgei", 0x08), ("tgeiu", 0x09), ("tlti", 0x0A), ("tltiu", 0x0B), ("teqi", 0x0C), ("tnei", 0x0E)):
    _add(_n, f"000001 {{rs}} {_b(_r, 5)} {{immediate}}", "{rs}, {immediate}", desc="Trampa con inmediato")
_add("mtsab", "000001 {rs} 11000 {immediate}", "{rs}, {immediate}", desc="Fija SA en bytes")
_add("mtsah", "000001 {rs} 11001 {immediate}", "{rs}, {immediate}", desc="Fija SA en medias palabras")

# Opcodes primarios
_add("j", "000010 {target}", "{target}", cat="jump", desc="Salto")
_add("jal", "000011 {target}", "{target}", cat="jump", desc="Llamada a función")
for _n, _o in (("beq", 0x04), ("bne", 0x05), ("beql", 0x14), ("bnel", 0x15)):
    _add(_n, f"{_b(_o, 6)} {{rs}} {{rt}} {{offset}}", "{rs}, {rt}, {offset}", cat="branch", desc="Salto condicional")
for _n, _o in (("blez", 0x06), ("bgtz", 0x07), ("blezl", 0x16), ("bgtzl", 0x17)):
    _add(_n, f"{_b(_o, 6)} {{rs}} 00000 {{offset}}", "{rs}, {offset}", cat="branch", desc="Salto condicional")
for _n, _o, _d in (("addi", 0x08, "Suma inmediata"), ("addiu", 0x09, "Suma inmediata"),
                   ("slti", 0x0A, "Fija si menor que inmediato"), ("sltiu", 0x0B, "Fija si menor que inmediato"),
                   ("andi", 0x0C, "AND con inmediato"), ("ori", 0x0D, "OR con inmediato"),
                   ("xori", 0x0E, "XOR con inmediato"),
                   ("daddi", 0x18, "Suma inmediata doble palabra"), ("daddiu", 0x19, "Suma inmediata doble palabra")):
    _add(_n, f"{_b(_o, 6)} {{rs}} {{rt}} {{immediate}}", "{rt}, {rs}, {immediate}", desc=_d)
_add("lui", "001111 00000 {rt} {immediate}", "{rt}, {immediate}", desc="Carga mitad superior")

_MEMORY_OPS = (
    ("ldl", 0x1A, "Carga doble palabra izquierda"), ("ldr", 0x1B, "Carga doble palabra derecha"),
    ("lq", 0x1E, "Carga cuádruple palabra"), ("sq", 0x1F, "Guarda cuádruple palabra"),
    ("lb", 0x20, "Carga byte"), ("lh", 0x21, "Carga media palabra"),
    ("lwl", 0x22, "Carga palabra izquierda"), ("lw", 0x23, "Carga palabra"),
    ("lbu", 0x24, "Carga byte sin signo"), ("lhu", 0x25, "Carga media palabra sin signo"),
    ("lwr", 0x26, "Carga palabra derecha"), ("lwu", 0x27, "Carga palabra sin signo"),
    ("sb", 0x28, "Guarda byte"), ("sh", 0x29, "Guarda media palabra"),
    ("swl", 0x2A, "Guarda palabra izquierda"), ("sw", 0x2B, "Guarda palabra"),
    ("sdl", 0x2C, "Guarda doble palabra izquierda"), ("sdr", 0x2D, "Guarda doble palabra derecha"),
    ("swr", 0x2E, "Guarda palabra derecha"),
    ("ld", 0x37, "Carga doble palabra"), ("sd", 0x3F, "Guarda doble palabra"),
)
for _n, _o, _d in _MEMORY_OPS:
    _add(_n, f"{_b(_o, 6)} {{base}} {{rt}} {{offset}}", "{rt}, {offset}({base})", desc=_d)
_add("cache", "101111 {base} {op} {offset}", "{op}, {offset}({base})", desc="Operación de caché")
_add("pref", "110011 {base} {op} {offset}", "{op}, {offset}({base})", desc="Precarga")
_add("lwc1", "110001 {base} {ft} {offset}", "{ft}, {offset}({base})", desc="Carga flotante")
_add("swc1", "111001 {base} {ft} {offset}", "{ft}, {offset}({base})", desc="Guarda flotante")
_add("lqc2", "110110 {base} {vft} {offset}", "{vft}, {offset}({base})", desc="Carga vector VU0")
_add("sqc2", "111110 {base} {vft} {offset}", "{vft}, {offset}({base})", desc="Guarda vector VU0")

# COP0 (opcode 0x10)
_add("mfc0", "010000 00000 {rt} {reg} 00000000000", "{rt}, {reg}", desc="Lee registro COP0")
_add("mtc0", "010000 00100 {rt} {reg} 00000000000", "{rt}, {reg}", desc="Escribe registro COP0")
for _n, _c in (("bc0f", 0), ("bc0t", 1), ("bc0fl", 2), ("bc0tl", 3)):
    _add(_n, f"010000 01000 {_b(_c, 5)} {{offset}}", "{offset}", cat="branch", desc="Salto según COP0")
for _n, _f, _d in (("tlbr", 0x01, "Lee entrada TLB"), ("tlbwi", 0x02, "Escribe entrada TLB indexada"),
                   ("tlbwr", 0x06, "Escribe entrada TLB aleatoria"), ("tlbp", 0x08, "Busca en TLB"),
                   ("eret", 0x18, "Retorno de excepción"), ("ei", 0x38, "Habilita interrupciones"),
                   ("di", 0x39, "Deshabilita interrupciones")):
    _add(_n, f"010000 10000 000000000000000 {_b(_f, 6)}", "", desc=_d)

# COP1 (opcode 0x11)
for _n, _s, _d in (("mfc1", 0x00, "Mueve desde FPU"), ("cfc1", 0x02, "Lee control FPU"),
                   ("mtc1", 0x04, "Mueve a FPU"), ("ctc1", 0x06, "Escribe control FPU")):
    _add(_n, f"010001 {_b(_s, 5)} {{rt}} {{fs}} 00000000000", "{rt}, {fs}", desc=_d)
for _n, _c in (("bc1f", 0), ("bc1t", 1), ("bc1fl", 2), ("bc1tl", 3)):
    _add(_n, f"010001 01000 {_b(_c, 5)} {{offset}}", "{offset}", cat="branch", desc="Salto según FPU")
_FPU_S = (
    ("add.s", 0x00, "{fd}, {fs}, {ft}"), ("sub.s", 0x01, "{fd}, {fs}, {ft}"),
    ("mul.s", 0x02, "{fd}, {fs}, {ft}"), ("div.s", 0x03, "{fd}, {fs}, {ft}"),
    ("sqrt.s", 0x04, "{fd}, {ft}"), ("abs.s", 0x05, "{fd}, {fs}"),
    ("mov.s", 0x06, "{fd}, {fs}"), ("neg.s", 0x07, "{fd}, {fs}"),
    ("rsqrt.s", 0x16, "{fd}, {fs}, {ft}"),
    ("adda.s", 0x18, "{fs}, {ft}"), ("suba.s", 0x19, "{fs}, {ft}"), ("mula.s", 0x1A, "{fs}, {ft}"),
    ("madd.s", 0x1C, "{fd}, {fs}, {ft}"), ("msub.s", 0x1D, "{fd}, {fs}, {ft}"),
    ("madda.s", 0x1E, "{fs}, {ft}"), ("msuba.s", 0x1F, "{fs}, {ft}"),
    ("cvt.w.s", 0x24, "{fd}, {fs}"),
    ("max.s", 0x28, "{fd}, {fs}, {ft}"), ("min.s", 0x29, "{fd}, {fs}, {ft}"),
    ("c.f.s", 0x30, "{fs}, {ft}"), ("c.eq.s", 0x32, "{fs}, {ft}"),
    ("c.lt.s", 0x34, "{fs}, {ft}"), ("c.le.s", 0x36, "{fs}, {ft}"),
)
for _n, _f, _form in _FPU_S:
    _add(_n, _layout(_form, ["010001", "10000", "{ft}", "{fs}", "{fd}", _b(_f, 6)]), _form,
         desc="Operación en coma flotante")
_add("cvt.s.w", "010001 10100 00000 {fs} {fd} 100000", "{fd}, {fs}", desc="Convierte entero a flotante")

# COP2 / VU0 (opcode 0x12)
_add("qmfc2", "010010 00001 {rt} {vfs} 00000000000", "{rt}, {vfs}", desc="Mueve desde VU0")
_add("cfc2", "010010 00010 {rt} {vis} 00000000000", "{rt}, {vis}", desc="Lee control VU0")
_add("qmtc2", "010010 00101 {rt} {vfs} 00000000000", "{rt}, {vfs}", desc="Mueve a VU0")
_add("ctc2", "010010 00110 {rt} {vis} 00000000000", "{rt}, {vis}", desc="Escribe control VU0")
for _n, _c in (("bc2f", 0), ("bc2t", 1), ("bc2fl", 2), ("bc2tl", 3)):
    _add(_n, f"010010 01000 {_b(_c, 5)} {{offset}}", "{offset}", cat="branch", desc="Salto según VU0")

def _vu1(name: str, funct: int, form: str, head: str = "{dest} {vft} {vfs} {vfd}") -> None:
    """Macro VU0 de la tabla special1: campo funct en bits 5..0."""
    _add(name, _layout(form, ["010010", "1", *head.split(), _b(funct, 6)]), form, desc="Macro VU0")

def _vu2(name: str, index: int, form: str, head: str = "{dest} {vft} {vfs}") -> None:
    """Macro VU0 de la tabla special2: índice = (bits 10..6 << 2) | bits 1..0, bits 5..2 = 1111."""
    parts = ["010010", "1", *head.split(), _b(index >> 2, 5), "1111", _b(index & 3, 2)]
    _add(name, _layout(form, parts), form, desc="Macro VU0")

for _base, _start in (("vadd", 0x00), ("vsub", 0x04), ("vmadd", 0x08), ("vmsub", 0x0C),
                      ("vmax", 0x10), ("vmini", 0x14), ("vmul", 0x18)):
    for _i, _lane in enumerate(LANES):
        _vu1(_base + _lane, _start + _i, "{vfd}, {vfs}, {vft}" + _lane)
for _n, _f, _src in (("vmulq", 0x1C, "Q"), ("vmaxi", 0x1D, "I"), ("vmuli", 0x1E, "I"), ("vminii", 0x1F, "I"),
                     ("vaddq", 0x20, "Q"), ("vmaddq", 0x21, "Q"), ("vaddi", 0x22, "I"), ("vmaddi", 0x23, "I"),
                     ("vsubq", 0x24, "Q"), ("vmsubq", 0x25, "Q"), ("vsubi", 0x26, "I"), ("vmsubi", 0x27, "I")):
    _vu1(_n, _f, "{vfd}, {vfs}, " + _src)
for _n, _f in (("vadd", 0x28), ("vmadd", 0x29), ("vmul", 0x2A), ("vmax", 0x2B),
               ("vsub", 0x2C), ("vmsub", 0x2D), ("vmini", 0x2F)):
    _vu1(_n, _f, "{vfd}, {vfs}, {vft}")
_vu1("vopmsub.xyz", 0x2E, "{vfd}, {vfs}, {vft}", head="1110 {vft} {vfs} {vfd}")
for _n, _f in (("viadd", 0x30), ("visub", 0x31), ("viand", 0x34), ("vior", 0x35)):
    _vu1(_n, _f, "{vid}, {vis}, {vit}", head="0000 {vit} {vis} {vid}")
_vu1("viaddi", 0x32, "{vit}, {vis}, {imm5}", head="0000 {vit} {vis} {imm5}")
_vu1("vcallms", 0x38, "{imm15}", head="0000 {imm15}")
_vu1("vcallmsr", 0x39, "vi27", head="0000 00000 11011 00000")

for _base, _start in (("vadda", 0x00), ("vsuba", 0x04), ("vmadda", 0x08), ("vmsuba", 0x0C), ("vmula", 0x18)):
    for _i, _lane in enumerate(LANES):
        _vu2(_base + _lane, _start + _i, "ACC, {vfs}, {vft}" + _lane)
for _i, _bits in enumerate(("0", "4", "12", "15")):
    _vu2("vitof" + _bits, 0x10 + _i, "{vft}, {vfs}")
    _vu2("vftoi" + _bits, 0x14 + _i, "{vft}, {vfs}")
for _n, _idx, _src in (("vmulaq", 0x1C, "Q"), ("vmulai", 0x1E, "I"),
                       ("vaddaq", 0x20, "Q"), ("vmaddaq", 0x21, "Q"), ("vaddai", 0x22, "I"), ("vmaddai", 0x23, "I"),
                       ("vsubaq", 0x24, "Q"), ("vmsubaq", 0x25, "Q"), ("vsubai", 0x26, "I"), ("vmsubai", 0x27, "I")):
    _vu2(_n, _idx, "ACC, {vfs}, " + _src)
for _n, _idx in (("vadda", 0x28), ("vmadda", 0x29), ("vmula", 0x2A), ("vsuba", 0x2C), ("vmsuba", 0x2D)):
    _vu2(_n, _idx, "ACC, {vfs}, {vft}")
_vu2("vabs", 0x1D, "{vft}, {vfs}")
_vu2("vclipw.xyz", 0x1F, "{vfs}xyz, {vft}w", head="1110 {vft} {vfs}")
_vu2("vopmula.xyz", 0x2E, "ACC, {vfs}, {vft}", head="1110 {vft} {vfs}")
_vu2("vnop", 0x2F, "", head="0000 00000 00000")
_vu2("vmove", 0x30, "{vft}, {vfs}")
_vu2("vmr32", 0x31, "{vft}, {vfs}")
_vu2("vlqi", 0x34, "{vft}, ({vis}++)", head="{dest} {vft} {vis}")
_vu2("vsqi", 0x35, "{vfs}, ({vit}++)", head="{dest} {vit} {vfs}")
_vu2("vlqd", 0x36, "{vft}, (--{vis})", head="{dest} {vft} {vis}")
_vu2("vsqd", 0x37, "{vfs}, (--{vit})", head="{dest} {vit} {vfs}")
_vu2("vdiv", 0x38, "Q, {vfs}{fsf}, {vft}{ftf}", head="{ftf} {fsf} {vft} {vfs}")
_vu2("vsqrt", 0x39, "Q, {vft}{ftf}", head="{ftf} 00 {vft} 00000")
_vu2("vrsqrt", 0x3A, "Q, {vfs}{fsf}, {vft}{ftf}", head="{ftf} {fsf} {vft} {vfs}")
_vu2("vwaitq", 0x3B, "", head="0000 00000 00000")
_vu2("vmtir", 0x3C, "{vit}, {vfs}{fsf}", head="00 {fsf} {vit} {vfs}")
_vu2("vmfir", 0x3D, "{vft}, {vis}", head="{dest} {vft} {vis}")
_vu2("vilwr", 0x3E, "{vit}, ({vis})", head="{dest} {vit} {vis}")
_vu2("viswr", 0x3F, "{vit}, ({vis})", head="{dest} {vit} {vis}")
_vu2("vrnext", 0x40, "{vft}, R")
_vu2("vrget", 0x41, "{vft}, R")
_vu2("vrinit", 0x42, "R, {vfs}{fsf}", head="00 {fsf} 00000 {vfs}")
_vu2("vrxor", 0x43, "R, {vfs}{fsf}", head="00 {fsf} 00000 {vfs}")

# MMI (opcode 0x1C)
_add("madd", "011100 {rs} {rt} {rd} 00000 000000", ("{rd}, {rs}, {rt}", "{rs}, {rt}"),
     desc="Multiplica y acumula", defaults={"rd": 0})
_add("maddu", "011100 {rs} {rt} {rd} 00000 000001", ("{rd}, {rs}, {rt}", "{rs}, {rt}"),
     desc="Multiplica y acumula sin signo", defaults={"rd": 0})
_add("plzcw", "011100 {rs} 00000 {rd} 00000 000100", "{rd}, {rs}", desc="Cuenta ceros iniciales")
_add("mfhi1", "011100 00000 00000 {rd} 00000 010000", "{rd}", desc="Lee HI1")
_add("mthi1", "011100 {rs} 00000 00000 00000 010001", "{rs}", desc="Escribe HI1")
_add("mflo1", "011100 00000 00000 {rd} 00000 010010", "{rd}", desc="Lee LO1")
_add("mtlo1", "011100 {rs} 00000 00000 00000 010011", "{rs}", desc="Escribe LO1")
_add("mult1", "011100 {rs} {rt} {rd} 00000 011000", ("{rd}, {rs}, {rt}", "{rs}, {rt}"),
     desc="Multiplica (pipeline 1)", defaults={"rd": 0})
_add("multu1", "011100 {rs} {rt} {rd} 00000 011001", ("{rd}, {rs}, {rt}", "{rs}, {rt}"),
     desc="Multiplica sin signo (pipeline 1)", defaults={"rd": 0})
_add("div1", "011100 {rs} {rt} 00000 00000 011010", "{rs}, {rt}", desc="Divide (pipeline 1)")
_add("divu1", "011100 {rs} {rt} 00000 00000 011011", "{rs}, {rt}", desc="Divide sin signo (pipeline 1)")
_add("madd1", "011100 {rs} {rt} {rd} 00000 100000", ("{rd}, {rs}, {rt}", "{rs}, {rt}"),
     desc="Multiplica y acumula (pipeline 1)", defaults={"rd": 0})
_add("maddu1", "011100 {rs} {rt} {rd} 00000 100001", ("{rd}, {rs}, {rt}", "{rs}, {rt}"),
     desc="Multiplica y acumula sin signo (pipeline 1)", defaults={"rd": 0})
for _n, _sa in (("pmfhl.lw", 0), ("pmfhl.uw", 1), ("pmfhl.slw", 2), ("pmfhl.lh", 3), ("pmfhl.sh", 4)):
    _add(_n, f"011100 00000 00000 {{rd}} {_b(_sa, 5)} 110000", "{rd}", desc="Lee HI/LO empaquetados")
_add("pmthl.lw", "011100 {rs} 00000 00000 00000 110001", "{rs}", desc="Escribe HI/LO empaquetados")
for _n, _f in (("psllh", 0x34), ("psrlh", 0x36), ("psrah", 0x37),
               ("psllw", 0x3C), ("psrlw", 0x3E), ("psraw", 0x3F)):
    _add(_n, f"011100 00000 {{rt}} {{rd}} {{sa}} {_b(_f, 6)}", "{rd}, {rt}, {sa}",
         desc="Desplazamiento empaquetado")

_RD_RS_RT = "{rd}, {rs}, {rt}"
_RD_RT = "{rd}, {rt}"
_RD_RT_RS = "{rd}, {rt}, {rs}"
_RS_RT = "{rs}, {rt}"

# Subtablas MMI0..MMI3: (funct del grupo, [(mnemónico, código en bits 10..6, forma)])
_MMI_GROUPS = (
    (0x08, (
        ("paddw", 0x00, _RD_RS_RT), ("psubw", 0x01, _RD_RS_RT), ("pcgtw", 0x02, _RD_RS_RT),
        ("pmaxw", 0x03, _RD_RS_RT), ("paddh", 0x04, _RD_RS_RT), ("psubh", 0x05, _RD_RS_RT),
        ("pcgth", 0x06, _RD_RS_RT), ("pmaxh", 0x07, _RD_RS_RT), ("paddb", 0x08, _RD_RS_RT),
        ("psubb", 0x09, _RD_RS_RT), ("pcgtb", 0x0A, _RD_RS_RT), ("paddsw", 0x10, _RD_RS_RT),
        ("psubsw", 0x11, _RD_RS_RT), ("pextlw", 0x12, _RD_RS_RT), ("ppacw", 0x13, _RD_RS_RT),
        ("paddsh", 0x14, _RD_RS_RT), ("psubsh", 0x15, _RD_RS_RT), ("pextlh", 0x16, _RD_RS_RT),
        ("ppach", 0x17, _RD_RS_RT), ("paddsb", 0x18, _RD_RS_RT), ("psubsb", 0x19, _RD_RS_RT),
        ("pextlb", 0x1A, _RD_RS_RT), ("ppacb", 0x1B, _RD_RS_RT), ("pext5", 0x1E, _RD_RT),
        ("ppac5", 0x1F, _RD_RT),
    )),
    (0x28, (
        ("pabsw", 0x01, _RD_RT), ("pceqw", 0x02, _RD_RS_RT), ("pminw", 0x03, _RD_RS_RT),
        ("padsbh", 0x04, _RD_RS_RT), ("pabsh", 0x05, _RD_RT), ("pceqh", 0x06, _RD_RS_RT),
        ("pminh", 0x07, _RD_RS_RT), ("pceqb", 0x0A, _RD_RS_RT), ("padduw", 0x10, _RD_RS_RT),
        ("psubuw", 0x11, _RD_RS_RT), ("pextuw", 0x12, _RD_RS_RT), ("padduh", 0x14, _RD_RS_RT),
        ("psubuh", 0x15, _RD_RS_RT), ("pextuh", 0x16, _RD_RS_RT), ("paddub", 0x18, _RD_RS_RT),
        ("psubub", 0x19, _RD_RS_RT), ("pextub", 0x1A, _RD_RS_RT), ("qfsrv", 0x1B, _RD_RS_RT),
    )),
    (0x09, (
        ("pmaddw", 0x00, _RD_RS_RT), ("psllvw", 0x02, _RD_RT_RS), ("psrlvw", 0x03, _RD_RT_RS),
        ("pmsubw", 0x04, _RD_RS_RT), ("pmfhi", 0x08, "{rd}"), ("pmflo", 0x09, "{rd}"),
        ("pinth", 0x0A, _RD_RS_RT), ("pmultw", 0x0C, _RD_RS_RT), ("pdivw", 0x0D, _RS_RT),
        ("pcpyld", 0x0E, _RD_RS_RT), ("pmaddh", 0x10, _RD_RS_RT), ("phmadh", 0x11, _RD_RS_RT),
        ("pand", 0x12, _RD_RS_RT), ("pxor", 0x13, _RD_RS_RT), ("pmsubh", 0x14, _RD_RS_RT),
        ("phmsbh", 0x15, _RD_RS_RT), ("pexeh", 0x1A, _RD_RT), ("prevh", 0x1B, _RD_RT),
        ("pmulth", 0x1C, _RD_RS_RT), ("pdivbw", 0x1D, _RS_RT), ("pexew", 0x1E, _RD_RT),
        ("prot3w", 0x1F, _RD_RT),
    )),
    (0x29, (
        ("pmadduw", 0x00, _RD_RS_RT), ("psravw", 0x03, _RD_RT_RS), ("pmthi", 0x08, "{rs}"),
        ("pmtlo", 0x09, "{rs}"), ("pinteh", 0x0A, _RD_RS_RT), ("pmultuw", 0x0C, _RD_RS_RT),
        ("pdivuw", 0x0D, _RS_RT), ("pcpyud", 0x0E, _RD_RS_RT), ("por", 0x12, _RD_RS_RT),
        ("pnor", 0x13, _RD_RS_RT), ("pexch", 0x1A, _RD_RT), ("pcpyh", 0x1B, _RD_RT),
        ("pexcw", 0x1E, _RD_RT),
    )),
)
for _funct, _ops in _MMI_GROUPS:
    for _n, _sub, _form in _ops:
        _add(_n, _layout(_form, ["011100", "{rs}", "{rt}", "{rd}", _b(_sub, 5), _b(_funct, 6)]), _form,
             desc="Instrucción MMI empaquetada")

# ---------------- Catálogo ----------------

class Catalog:
    """Catálogo de solo lectura de registros e instrucciones.

    Se construye una vez y se inyecta en el codificador, el compilador y el
    analizador. Las búsquedas no distinguen mayúsculas y devuelven None cuando
    el nombre no existe; cada llamador decide si eso es un error.
    """

    def __init__(self, registers: Dict[RegKind, List[Register]], instructions: Iterable[InstructionDef]):
        self._banks: Dict[str, Dict[str, Register]] = {
            kind: {r.name.lower(): r for r in regs} for kind, regs in registers.items()
        }
        self._ordinals: Dict[str, Tuple[Register, ...]] = {
            kind: tuple(sorted(regs, key=lambda r: r.ordinal)) for kind, regs in registers.items()
        }
        self._instructions: Dict[str, InstructionDef] = {}
        for ins in instructions:
            key = ins.mnemonic.lower()
            if key in self._instructions:
                raise ValueError(f"Mnemónico duplicado en el catálogo: {ins.mnemonic}")
            self._instructions[key] = ins

    def find_register(self, name: str, kind: Optional[str] = None) -> Optional[Register]:
        t = name.strip().lower()
        kinds = [kind] if kind else list(self._banks)
        for k in kinds:
            bank = self._banks.get(k, {})
            t_k = GPR_ALIASES.get(t, t) if k == "gpr" else t
            if t_k in bank:
                return bank[t_k]
        return None

    def register_name(self, kind: str, ordinal: int) -> str:
        regs = self._ordinals[kind]
        if 0 <= ordinal < len(regs):
            return regs[ordinal].name
        return f"${ordinal}"

    def find_instruction(self, mnemonic: str) -> Optional[InstructionDef]:
        return self._instructions.get(mnemonic.strip().lower())

    def instructions_in_category(self, category: Category) -> List[InstructionDef]:
        return [i for i in self._instructions.values() if i.category == category]

    def __iter__(self) -> Iterator[InstructionDef]:
        return iter(self._instructions.values())

    def __len__(self) -> int:
        return len(self._instructions)

    def __contains__(self, mnemonic: object) -> bool:
        return isinstance(mnemonic, str) and self.find_instruction(mnemonic) is not None

@lru_cache(maxsize=None)
def default_catalog() -> Catalog:
    """Catálogo del EE construido a partir de las tablas de este módulo."""
    return Catalog(build_register_banks(), _TABLE)
