'''
decodificador del EE: palabra de 32 bits -> mnemónico, operandos y anotaciones

La selección del mnemónico es un despacho fijo por familias de opcode
(opcode primario -> funct / rt / rs -> subtabla MMI o VU0); el formato de los
operandos sale de la forma canónica del catálogo, así que lo que se decodifica
vuelve a codificarse sin pérdidas.
'''

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from .isa import Catalog, InstructionDef, FIELD_KINDS, LANES, default_catalog
from .encoding import PLACEHOLDER_RE
from .utils import hex4, hex8, sign_extend, u32

# ---------------- Tablas de despacho ----------------

# Opcode primario (bits 31..26); 0x00, 0x01, 0x10-0x12 y 0x1C tienen subtabla
PRIMARY: Dict[int, str] = {
    0x02: "j", 0x03: "jal", 0x04: "beq", 0x05: "bne", 0x06: "blez", 0x07: "bgtz",
    0x08: "addi", 0x09: "addiu", 0x0A: "slti", 0x0B: "sltiu",
    0x0C: "andi", 0x0D: "ori", 0x0E: "xori", 0x0F: "lui",
    0x14: "beql", 0x15: "bnel", 0x16: "blezl", 0x17: "bgtzl",
    0x18: "daddi", 0x19: "daddiu", 0x1A: "ldl", 0x1B: "ldr", 0x1E: "lq", 0x1F: "sq",
    0x20: "lb", 0x21: "lh", 0x22: "lwl", 0x23: "lw", 0x24: "lbu", 0x25: "lhu", 0x26: "lwr", 0x27: "lwu",
    0x28: "sb", 0x29: "sh", 0x2A: "swl", 0x2B: "sw", 0x2C: "sdl", 0x2D: "sdr", 0x2E: "swr", 0x2F: "cache",
    0x31: "lwc1", 0x33: "pref", 0x36: "lqc2", 0x37: "ld",
    0x39: "swc1", 0x3E: "sqc2", 0x3F: "sd",
}

# SPECIAL: campo funct (bits 5..0)
SPECIAL: Dict[int, str] = {
    0x00: "sll", 0x02: "srl", 0x03: "sra", 0x04: "sllv", 0x06: "srlv", 0x07: "srav",
    0x08: "jr", 0x09: "jalr", 0x0A: "movz", 0x0B: "movn", 0x0C: "syscall", 0x0D: "break", 0x0F: "sync",
    0x10: "mfhi", 0x11: "mthi", 0x12: "mflo", 0x13: "mtlo",
    0x14: "dsllv", 0x16: "dsrlv", 0x17: "dsrav",
    0x18: "mult", 0x19: "multu", 0x1A: "div", 0x1B: "divu",
    0x20: "add", 0x21: "addu", 0x22: "sub", 0x23: "subu", 0x24: "and", 0x25: "or", 0x26: "xor", 0x27: "nor",
    0x28: "mfsa", 0x29: "mtsa", 0x2A: "slt", 0x2B: "sltu",
    0x2C: "dadd", 0x2D: "daddu", 0x2E: "dsub", 0x2F: "dsubu",
    0x30: "tge", 0x31: "tgeu", 0x32: "tlt", 0x33: "tltu", 0x34: "teq", 0x36: "tne",
    0x38: "dsll", 0x3A: "dsrl", 0x3B: "dsra", 0x3C: "dsll32", 0x3E: "dsrl32", 0x3F: "dsra32",
}

# REGIMM: campo rt (bits 20..16)
REGIMM: Dict[int, str] = {
    0x00: "bltz", 0x01: "bgez", 0x02: "bltzl", 0x03: "bgezl",
    0x08: "tgei", 0x09: "tgeiu", 0x0A: "tlti", 0x0B: "tltiu", 0x0C: "teqi", 0x0E: "tnei",
    0x10: "bltzal", 0x11: "bgezal", 0x12: "bltzall", 0x13: "bgezall",
    0x18: "mtsab", 0x19: "mtsah",
}

# COP0: campo rs; rs=0x08 condición en rt; rs=0x10 operación en funct
COP0_RS: Dict[int, str] = {0x00: "mfc0", 0x04: "mtc0"}
COP0_BC: Dict[int, str] = {0x00: "bc0f", 0x01: "bc0t", 0x02: "bc0fl", 0x03: "bc0tl"}
COP0_C0: Dict[int, str] = {
    0x01: "tlbr", 0x02: "tlbwi", 0x06: "tlbwr", 0x08: "tlbp", 0x18: "eret", 0x38: "ei", 0x39: "di",
}

# COP1: campo rs; rs=0x08 condición en rt; rs=0x10 formato S y rs=0x14 formato W por funct
COP1_RS: Dict[int, str] = {0x00: "mfc1", 0x02: "cfc1", 0x04: "mtc1", 0x06: "ctc1"}
COP1_BC: Dict[int, str] = {0x00: "bc1f", 0x01: "bc1t", 0x02: "bc1fl", 0x03: "bc1tl"}
COP1_S: Dict[int, str] = {
    0x00: "add.s", 0x01: "sub.s", 0x02: "mul.s", 0x03: "div.s", 0x04: "sqrt.s",
    0x05: "abs.s", 0x06: "mov.s", 0x07: "neg.s", 0x16: "rsqrt.s",
    0x18: "adda.s", 0x19: "suba.s", 0x1A: "mula.s", 0x1C: "madd.s", 0x1D: "msub.s",
    0x1E: "madda.s", 0x1F: "msuba.s", 0x24: "cvt.w.s", 0x28: "max.s", 0x29: "min.s",
    0x30: "c.f.s", 0x32: "c.eq.s", 0x34: "c.lt.s", 0x36: "c.le.s",
}
COP1_W: Dict[int, str] = {0x20: "cvt.s.w"}

# COP2: bit 25 = 0 -> movimientos/saltos por rs; bit 25 = 1 -> macro VU0
COP2_RS: Dict[int, str] = {0x01: "qmfc2", 0x02: "cfc2", 0x05: "qmtc2", 0x06: "ctc2"}
COP2_BC: Dict[int, str] = {0x00: "bc2f", 0x01: "bc2t", 0x02: "bc2fl", 0x03: "bc2tl"}

def _lanes(base: str, start: int) -> Dict[int, str]:
    return {start + i: base + lane for i, lane in enumerate(LANES)}

# VU0 special1: funct (bits 5..0) 0x00-0x3B
VU_SPECIAL1: Dict[int, str] = {
    **_lanes("vadd", 0x00), **_lanes("vsub", 0x04), **_lanes("vmadd", 0x08), **_lanes("vmsub", 0x0C),
    **_lanes("vmax", 0x10), **_lanes("vmini", 0x14), **_lanes("vmul", 0x18),
    0x1C: "vmulq", 0x1D: "vmaxi", 0x1E: "vmuli", 0x1F: "vminii",
    0x20: "vaddq", 0x21: "vmaddq", 0x22: "vaddi", 0x23: "vmaddi",
    0x24: "vsubq", 0x25: "vmsubq", 0x26: "vsubi", 0x27: "vmsubi",
    0x28: "vadd", 0x29: "vmadd", 0x2A: "vmul", 0x2B: "vmax", 0x2C: "vsub", 0x2D: "vmsub",
    0x2E: "vopmsub.xyz", 0x2F: "vmini",
    0x30: "viadd", 0x31: "visub", 0x32: "viaddi", 0x34: "viand", 0x35: "vior",
    0x38: "vcallms", 0x39: "vcallmsr",
}

# VU0 special2 (funct 0x3C-0x3F): índice = (bits 10..6 << 2) | bits 1..0
VU_SPECIAL2: Dict[int, str] = {
    **_lanes("vadda", 0x00), **_lanes("vsuba", 0x04), **_lanes("vmadda", 0x08), **_lanes("vmsuba", 0x0C),
    0x10: "vitof0", 0x11: "vitof4", 0x12: "vitof12", 0x13: "vitof15",
    0x14: "vftoi0", 0x15: "vftoi4", 0x16: "vftoi12", 0x17: "vftoi15",
    **_lanes("vmula", 0x18),
    0x1C: "vmulaq", 0x1D: "vabs", 0x1E: "vmulai", 0x1F: "vclipw.xyz",
    0x20: "vaddaq", 0x21: "vmaddaq", 0x22: "vaddai", 0x23: "vmaddai",
    0x24: "vsubaq", 0x25: "vmsubaq", 0x26: "vsubai", 0x27: "vmsubai",
    0x28: "vadda", 0x29: "vmadda", 0x2A: "vmula", 0x2C: "vsuba", 0x2D: "vmsuba",
    0x2E: "vopmula.xyz", 0x2F: "vnop",
    0x30: "vmove", 0x31: "vmr32", 0x34: "vlqi", 0x35: "vsqi", 0x36: "vlqd", 0x37: "vsqd",
    0x38: "vdiv", 0x39: "vsqrt", 0x3A: "vrsqrt", 0x3B: "vwaitq",
    0x3C: "vmtir", 0x3D: "vmfir", 0x3E: "vilwr", 0x3F: "viswr",
    0x40: "vrnext", 0x41: "vrget", 0x42: "vrinit", 0x43: "vrxor",
}

# MMI: funct (bits 5..0); 0x08/0x28/0x09/0x29 son MMI0..MMI3 y 0x30 es PMFHL, por el campo sa
MMI: Dict[int, str] = {
    0x00: "madd", 0x01: "maddu", 0x04: "plzcw",
    0x10: "mfhi1", 0x11: "mthi1", 0x12: "mflo1", 0x13: "mtlo1",
    0x18: "mult1", 0x19: "multu1", 0x1A: "div1", 0x1B: "divu1",
    0x20: "madd1", 0x21: "maddu1",
    0x34: "psllh", 0x36: "psrlh", 0x37: "psrah", 0x3C: "psllw", 0x3E: "psrlw", 0x3F: "psraw",
}
MMI0: Dict[int, str] = {
    0x00: "paddw", 0x01: "psubw", 0x02: "pcgtw", 0x03: "pmaxw",
    0x04: "paddh", 0x05: "psubh", 0x06: "pcgth", 0x07: "pmaxh",
    0x08: "paddb", 0x09: "psubb", 0x0A: "pcgtb",
    0x10: "paddsw", 0x11: "psubsw", 0x12: "pextlw", 0x13: "ppacw",
    0x14: "paddsh", 0x15: "psubsh", 0x16: "pextlh", 0x17: "ppach",
    0x18: "paddsb", 0x19: "psubsb", 0x1A: "pextlb", 0x1B: "ppacb",
    0x1E: "pext5", 0x1F: "ppac5",
}
MMI1: Dict[int, str] = {
    0x01: "pabsw", 0x02: "pceqw", 0x03: "pminw", 0x04: "padsbh", 0x05: "pabsh",
    0x06: "pceqh", 0x07: "pminh", 0x0A: "pceqb",
    0x10: "padduw", 0x11: "psubuw", 0x12: "pextuw",
    0x14: "padduh", 0x15: "psubuh", 0x16: "pextuh",
    0x18: "paddub", 0x19: "psubub", 0x1A: "pextub", 0x1B: "qfsrv",
}
MMI2: Dict[int, str] = {
    0x00: "pmaddw", 0x02: "psllvw", 0x03: "psrlvw", 0x04: "pmsubw",
    0x08: "pmfhi", 0x09: "pmflo", 0x0A: "pinth", 0x0C: "pmultw", 0x0D: "pdivw", 0x0E: "pcpyld",
    0x10: "pmaddh", 0x11: "phmadh", 0x12: "pand", 0x13: "pxor", 0x14: "pmsubh", 0x15: "phmsbh",
    0x1A: "pexeh", 0x1B: "prevh", 0x1C: "pmulth", 0x1D: "pdivbw", 0x1E: "pexew", 0x1F: "prot3w",
}
MMI3: Dict[int, str] = {
    0x00: "pmadduw", 0x03: "psravw", 0x08: "pmthi", 0x09: "pmtlo", 0x0A: "pinteh",
    0x0C: "pmultuw", 0x0D: "pdivuw", 0x0E: "pcpyud", 0x12: "por", 0x13: "pnor",
    0x1A: "pexch", 0x1B: "pcpyh", 0x1E: "pexcw",
}
PMFHL: Dict[int, str] = {0x00: "pmfhl.lw", 0x01: "pmfhl.uw", 0x02: "pmfhl.slw", 0x03: "pmfhl.lh", 0x04: "pmfhl.sh"}
_MMI_SUB = {0x08: MMI0, 0x28: MMI1, 0x09: MMI2, 0x29: MMI3, 0x30: PMFHL}

# Anchura de acceso por mnemónico de carga/almacenamiento
LOADS: Dict[str, int] = {
    "lb": 1, "lbu": 1, "lh": 2, "lhu": 2, "lw": 4, "lwu": 4, "lwl": 4, "lwr": 4,
    "ld": 8, "ldl": 8, "ldr": 8, "lq": 16, "lwc1": 4, "lqc2": 16,
}
STORES: Dict[str, int] = {
    "sb": 1, "sh": 2, "sw": 4, "swl": 4, "swr": 4, "sd": 8, "sdl": 8, "sdr": 8,
    "sq": 16, "swc1": 4, "sqc2": 16,
}

# Instrucciones que escriben el GPR rt (el resto escriben rd si la forma lo nombra)
WRITES_RT = {
    "addi", "addiu", "slti", "sltiu", "andi", "ori", "xori", "daddi", "daddiu", "lui",
    "lb", "lbu", "lh", "lhu", "lw", "lwu", "lwl", "lwr", "ld", "ldl", "ldr", "lq",
    "mfc0", "mfc1", "cfc1", "qmfc2", "cfc2",
}

# Saltos que dejan la dirección de retorno en ra
LINKS = {"jal", "bltzal", "bgezal", "bltzall", "bgezall"}

@dataclass(frozen=True)
class DecodedInstruction:
    """Resultado de decodificar una palabra.

    kind: 'branch', 'jump', 'call', 'load', 'store', 'other' o 'unknown'.
    dest es el GPR que escribe la instrucción (None si no escribe ninguno o es zero);
    base/offset describen el operando de memoria de cargas y almacenamientos.
    """
    address: int
    word: int
    mnemonic: str
    operands: str = ""
    annotation: str = ""
    comment: str = ""
    kind: str = "other"
    target: Optional[int] = None
    dest: Optional[int] = None
    base: Optional[int] = None
    offset: Optional[int] = None
    fields: Dict[str, int] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return f"{self.mnemonic} {self.operands}".strip()

    @property
    def size(self) -> Optional[int]:
        return LOADS.get(self.mnemonic) or STORES.get(self.mnemonic)

# ---------------- Despacho ----------------

def _cop0(word: int) -> Optional[str]:
    rs = (word >> 21) & 0x1F
    if rs == 0x08:
        return COP0_BC.get((word >> 16) & 0x1F)
    if rs == 0x10:
        return COP0_C0.get(word & 0x3F)
    return COP0_RS.get(rs)

def _cop1(word: int) -> Optional[str]:
    rs = (word >> 21) & 0x1F
    if rs == 0x08:
        return COP1_BC.get((word >> 16) & 0x1F)
    if rs == 0x10:
        return COP1_S.get(word & 0x3F)
    if rs == 0x14:
        return COP1_W.get(word & 0x3F)
    return COP1_RS.get(rs)

def _cop2(word: int) -> Optional[str]:
    if word & (1 << 25):
        funct = word & 0x3F
        if funct >= 0x3C:
            index = (((word >> 6) & 0x1F) << 2) | (word & 0x3)
            return VU_SPECIAL2.get(index)
        return VU_SPECIAL1.get(funct)
    rs = (word >> 21) & 0x1F
    if rs == 0x08:
        return COP2_BC.get((word >> 16) & 0x1F)
    return COP2_RS.get(rs)

def _mmi(word: int) -> Optional[str]:
    funct = word & 0x3F
    sa = (word >> 6) & 0x1F
    if funct in _MMI_SUB:
        return _MMI_SUB[funct].get(sa)
    if funct == 0x31:
        return "pmthl.lw" if sa == 0 else None
    return MMI.get(funct)

def dispatch(word: int) -> Optional[str]:
    """Mnemónico base de la palabra según el opcode primario y sus campos secundarios."""
    op = (word >> 26) & 0x3F
    if op == 0x00:
        return SPECIAL.get(word & 0x3F)
    if op == 0x01:
        return REGIMM.get((word >> 16) & 0x1F)
    if op == 0x10:
        return _cop0(word)
    if op == 0x11:
        return _cop1(word)
    if op == 0x12:
        return _cop2(word)
    if op == 0x1C:
        return _mmi(word)
    return PRIMARY.get(op)

# ---------------- Formato ----------------

def _pick_form(idef: InstructionDef, values: Dict[str, int]) -> str:
    # La forma abreviada gana cuando los campos que omite valen su valor por defecto
    for form in reversed(idef.forms):
        omitted = [f for f in idef.defaults if "{" + f + "}" not in form]
        if all(values.get(f) == idef.defaults[f] for f in omitted):
            return form
    return idef.forms[0]

def _branch_target(address: int, raw: int) -> int:
    return u32(address + 4 + (sign_extend(raw, 16) << 2))

def _jump_target(address: int, raw: int) -> int:
    # El segmento de 256 MB es el del hueco de retardo (pc + 4)
    return (u32(address + 4) & 0xF0000000) | (raw << 2)

def _render_field(name: str, raw: int, idef: InstructionDef, address: int, catalog: Catalog) -> str:
    kind = FIELD_KINDS[name]
    if kind in ("gpr", "cop0", "cop1"):
        return catalog.register_name(kind, raw)
    if kind == "vf":
        return f"vf{raw}"
    if kind == "vi":
        return f"vi{raw}"
    if kind == "lane":
        return LANES[raw]
    if name == "offset" and idef.category == "branch":
        return "$" + hex8(_branch_target(address, raw))
    if kind == "target":
        return "$" + hex8(_jump_target(address, raw))
    if kind == "simm":
        return str(sign_extend(raw, 5))
    if kind in ("shift", "code"):
        return str(raw)
    return "$" + hex4(raw)

def lane_suffix(dest: int) -> str:
    """Sufijo de carriles de una máscara dest; la máscara vacía se escribe '0'."""
    return "".join(lane for i, lane in enumerate(LANES) if dest & (8 >> i)) or "0"

def _unknown(word: int, address: int) -> DecodedInstruction:
    return DecodedInstruction(address, word, "unknown", comment="; Instrucción no reconocida", kind="unknown")

def _comment(idef: InstructionDef, values: Dict[str, int]) -> str:
    m = idef.mnemonic
    if m in ("addiu", "daddiu") and values["rs"] == 29 and values["rt"] == 29:
        if sign_extend(values["immediate"], 16) < 0:
            return "; Reserva marco de pila"
        return "; Libera marco de pila"
    if m == "jr" and values["rs"] == 31:
        return "; Retorno de función"
    if m == "sw" and values["rt"] == 31 and values["base"] == 29:
        return "; Guarda dirección de retorno"
    return f"; {idef.description}" if idef.description else ""

def decode(word: int, address: int, *, functions: Optional[Mapping[int, str]] = None,
           catalog: Optional[Catalog] = None) -> DecodedInstruction:
    """Decodifica una palabra situada en 'address'.

    Nunca falla: una palabra sin correspondencia produce el centinela 'unknown'.
    'functions' (dirección -> nombre) permite anotar destinos que son funciones conocidas.
    """
    word = u32(word)
    address = u32(address)
    catalog = catalog or default_catalog()
    if word == 0:
        return DecodedInstruction(address, 0, "nop", comment="; Sin operación")

    name = dispatch(word)
    idef = catalog.find_instruction(name) if name else None
    if idef is None or not idef.matches(word):
        return _unknown(word, address)

    values = idef.extract(word)
    form = _pick_form(idef, values)
    operands = PLACEHOLDER_RE.sub(
        lambda m: _render_field(m.group(1), values[m.group(1)], idef, address, catalog), form)

    mnemonic = idef.mnemonic
    if idef.has_dest:
        mnemonic += "." + lane_suffix(values["dest"])

    kind = "other"
    target = None
    if idef.category == "branch":
        kind, target = "branch", _branch_target(address, values["offset"])
    elif name in ("j", "jal"):
        kind, target = ("call" if name == "jal" else "jump"), _jump_target(address, values["target"])
    elif name == "jr":
        kind = "jump"
    elif name == "jalr":
        kind = "call"
    elif name in LOADS:
        kind = "load"
    elif name in STORES:
        kind = "store"

    annotation = ""
    if target is not None:
        distance = sign_extend(u32(target - (address + 4)), 32) >> 2
        annotation = f"({distance:+d})"
        if functions and target in functions:
            annotation += f" <{functions[target]}>"

    dest = None
    if name in WRITES_RT:
        dest = values["rt"]
    elif "rd" in values:
        dest = values["rd"]
    elif name in LINKS:
        dest = 31
    if dest == 0:
        dest = None

    base = offset = None
    if kind in ("load", "store"):
        base = values["base"]
        offset = sign_extend(values["offset"], 16)

    return DecodedInstruction(address, word, mnemonic, operands, annotation, _comment(idef, values),
                              kind, target, dest, base, offset, values)
