'''
análisis de referencias cruzadas y flujo de punteros sobre una secuencia decodificada

Pasada A: puntos de entrada de funciones (primera instrucción, la que sigue a un
jal, y la reserva de marco "addiu sp, sp, -N").
Pasada B: xrefs de saltos y llamadas, aristas de llamada y seguimiento de valores
de registros (lui/ori/addiu y aritmética simple) para resolver direcciones
efectivas de cargas, almacenamientos y saltos indirectos.

Es un análisis aproximado: nunca falla y lo que no puede resolver lo marca como
'unresolved'.
'''

from __future__ import annotations
import bisect
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from .decoding import DecodedInstruction
from .utils import sign_extend, u32

# Región plausible de código en la RAM del EE (32 MB a partir del área de usuario)
CODE_REGION = (0x00100000, 0x02000000)

@dataclass
class FunctionInfo:
    address: int
    name: str
    calls: List[int] = field(default_factory=list)    # destinos a los que llama
    callers: List[int] = field(default_factory=list)  # direcciones de las llamadas recibidas

@dataclass(frozen=True)
class TrackedValue:
    value: int
    provenance: Optional[int]   # dirección de la instrucción que fijó el valor

@dataclass(frozen=True)
class PointerRef:
    address: int
    access: str                 # 'load', 'store', 'jump' o 'call'
    base: int
    base_value: Optional[int]
    offset: int
    target: Optional[int]
    size: Optional[int]
    data_kind: str              # 'float', 'vector', 'byte', 'code', 'data' o 'unresolved'
    is_function: bool = False

    @property
    def resolved(self) -> bool:
        return self.target is not None

def function_name(address: int) -> str:
    return f"func_{address:08x}"

@dataclass
class AnalysisContext:
    functions: Dict[int, FunctionInfo] = field(default_factory=dict)
    xrefs: Dict[int, List[int]] = field(default_factory=dict)
    registers: List[Optional[TrackedValue]] = field(default_factory=lambda: [TrackedValue(0, None)] + [None] * 31)
    pointers: Dict[int, PointerRef] = field(default_factory=dict)
    notes: Dict[int, List[str]] = field(default_factory=dict)
    _entries: List[int] = field(default_factory=list)

    def add_function(self, address: int, name: Optional[str] = None) -> FunctionInfo:
        info = self.functions.get(address)
        if info is None:
            info = FunctionInfo(address, name or function_name(address))
            self.functions[address] = info
            bisect.insort(self._entries, address)
        return info

    def containing(self, address: int) -> Optional[FunctionInfo]:
        """Función cuyo punto de entrada es el más cercano por debajo de address."""
        i = bisect.bisect_right(self._entries, address)
        return self.functions[self._entries[i - 1]] if i else None

    def add_xref(self, source: int, target: int) -> None:
        self.xrefs.setdefault(target, []).append(source)

    def add_call(self, source: int, target: int) -> None:
        callee = self.add_function(target)
        if source not in callee.callers:
            callee.callers.append(source)
        caller = self.containing(source)
        if caller is not None and target not in caller.calls:
            caller.calls.append(target)

    def note(self, address: int, text: str) -> None:
        self.notes.setdefault(address, []).append(text)

    def function_names(self) -> Dict[int, str]:
        return {a: f.name for a, f in self.functions.items()}

# ---------------- Heurísticas ----------------

def allocates_frame(ins: DecodedInstruction) -> bool:
    f = ins.fields
    return (ins.mnemonic in ("addiu", "daddiu") and f.get("rs") == 29 and f.get("rt") == 29
            and sign_extend(f.get("immediate", 0), 16) < 0)

def likely_function(ins: DecodedInstruction) -> bool:
    """Prólogo típico: reserva de marco o guardado de ra en la pila."""
    if allocates_frame(ins):
        return True
    return ins.mnemonic in ("sw", "sd", "sq") and ins.fields.get("rt") == 31 and ins.base == 29

def data_kind(ins: DecodedInstruction, target: int) -> str:
    m = ins.mnemonic
    if m in ("lwc1", "swc1"):
        return "float"
    if m in ("lq", "sq", "lqc2", "sqc2"):
        return "vector"
    if m in ("lb", "lbu", "sb"):
        return "byte"
    if target % 4 == 0 and CODE_REGION[0] <= target < CODE_REGION[1]:
        return "code"
    return "data"

# ---------------- Seguimiento de registros ----------------

def _imm(f: Dict[str, int]) -> int:
    return sign_extend(f["immediate"], 16)

# Operaciones modeladas: mnemónico -> función (regs, campos) -> valor o None
_Getter = Callable[[int], Optional[int]]

_MODELED: Dict[str, Callable[[_Getter, Dict[str, int]], Optional[int]]] = {
    "lui": lambda r, f: f["immediate"] << 16,
    "ori": lambda r, f: None if r(f["rs"]) is None else r(f["rs"]) | f["immediate"],
    "andi": lambda r, f: None if r(f["rs"]) is None else r(f["rs"]) & f["immediate"],
    "xori": lambda r, f: None if r(f["rs"]) is None else r(f["rs"]) ^ f["immediate"],
    "addiu": lambda r, f: None if r(f["rs"]) is None else r(f["rs"]) + _imm(f),
    "addi": lambda r, f: None if r(f["rs"]) is None else r(f["rs"]) + _imm(f),
}

def _binary(op: Callable[[int, int], int]):
    def apply(r: _Getter, f: Dict[str, int]) -> Optional[int]:
        a, b = r(f["rs"]), r(f["rt"])
        return None if a is None or b is None else op(a, b)
    return apply

def _shift(op: Callable[[int, int], int]):
    def apply(r: _Getter, f: Dict[str, int]) -> Optional[int]:
        a = r(f["rt"])
        return None if a is None else op(a, f["sa"])
    return apply

_MODELED.update({
    "addu": _binary(lambda a, b: a + b), "add": _binary(lambda a, b: a + b),
    "subu": _binary(lambda a, b: a - b), "sub": _binary(lambda a, b: a - b),
    "and": _binary(lambda a, b: a & b), "or": _binary(lambda a, b: a | b),
    "xor": _binary(lambda a, b: a ^ b), "nor": _binary(lambda a, b: ~(a | b)),
    "sll": _shift(lambda a, s: a << s), "srl": _shift(lambda a, s: a >> s),
    "sra": _shift(lambda a, s: sign_extend(a, 32) >> s),
})

def _track(ctx: AnalysisContext, ins: DecodedInstruction, reg_name: Callable[[int], str]) -> None:
    if ins.dest is None:
        return
    regs = ctx.registers

    def get(n: int) -> Optional[int]:
        tv = regs[n]
        return None if tv is None else tv.value

    rule = _MODELED.get(ins.mnemonic)
    value = rule(get, ins.fields) if rule else None
    if value is None:
        regs[ins.dest] = None
        return
    value = u32(value)
    regs[ins.dest] = TrackedValue(value, ins.address)
    ctx.note(ins.address, f"{reg_name(ins.dest)} = ${value:08X}")

# ---------------- API ----------------

def analyze(stream: Sequence[DecodedInstruction], *,
            reg_name: Optional[Callable[[int], str]] = None) -> AnalysisContext:
    """Analiza una secuencia decodificada y devuelve un contexto nuevo."""
    if reg_name is None:
        from .regs import GPR_NAMES
        reg_name = GPR_NAMES.__getitem__
    ctx = AnalysisContext()
    by_address = {ins.address: ins for ins in stream}

    # Pasada A: puntos de entrada
    for i, ins in enumerate(stream):
        if i == 0 or stream[i - 1].mnemonic == "jal" or allocates_frame(ins):
            ctx.add_function(ins.address)

    # Pasada B: referencias y flujo de punteros
    for ins in stream:
        if ins.mnemonic == "jal" and ins.target is not None:
            ctx.add_xref(ins.address, ins.target)
            ctx.add_call(ins.address, ins.target)
        elif ins.kind in ("branch", "jump") and ins.target is not None:
            ctx.add_xref(ins.address, ins.target)
        elif ins.mnemonic in ("jr", "jalr"):
            rs = ins.fields["rs"]
            tv = ctx.registers[rs]
            if tv is not None:
                access = "call" if ins.mnemonic == "jalr" else "jump"
                ctx.pointers[ins.address] = PointerRef(ins.address, access, rs, tv.value, 0, tv.value,
                                                       4, "code", tv.value in ctx.functions)
                ctx.add_xref(ins.address, tv.value)
                if access == "call":
                    ctx.add_call(ins.address, tv.value)
        elif ins.kind in ("load", "store") and ins.base is not None:
            tv = ctx.registers[ins.base]
            if tv is None:
                ctx.pointers[ins.address] = PointerRef(ins.address, ins.kind, ins.base, None, ins.offset,
                                                       None, ins.size, "unresolved")
            else:
                target = u32(tv.value + ins.offset)
                kind = data_kind(ins, target)
                at_target = by_address.get(target)
                is_func = target in ctx.functions or (at_target is not None and likely_function(at_target))
                ctx.pointers[ins.address] = PointerRef(ins.address, ins.kind, ins.base, tv.value, ins.offset,
                                                       target, ins.size, kind, is_func)
        _track(ctx, ins, reg_name)

    return ctx
