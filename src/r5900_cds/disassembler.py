'''
desensamblador: bytes o códigos de trampa -> filas anotadas

Se decodifica todo una vez, se analiza (funciones, xrefs y punteros) y se
vuelve a decodificar con los nombres de función para que las anotaciones de
los saltos los muestren.
'''

from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .analysis import AnalysisContext, FunctionInfo, PointerRef, analyze
from .decoding import DecodedInstruction, decode
from .isa import Catalog, default_catalog
from .utils import hex8, u32

CODE_LINE_RE = re.compile(r"^\s*([0-9A-Fa-f]{8})\s+([0-9A-Fa-f]{8})\s*$")

@dataclass(frozen=True)
class DisassemblyRow:
    address: int
    raw: bytes                      # 4 bytes tal como están en memoria (little-endian)
    label: Optional[str]
    mnemonic: str
    operands: str
    comment: str
    xrefs: Tuple[int, ...]          # direcciones que saltan o llaman aquí

@dataclass(frozen=True)
class DisassemblyResult:
    rows: List[DisassemblyRow]
    functions: Dict[int, FunctionInfo]
    pointers: Dict[int, PointerRef]
    context: AnalysisContext

# ---------------- Entradas ----------------

def words_from_buffer(buffer: bytes, base_address: int = 0) -> List[Tuple[int, int]]:
    """Palabras little-endian; un resto de menos de 4 bytes se rellena con ceros."""
    data = bytes(buffer)
    data += b"\x00" * (-len(data) % 4)
    return [(u32(base_address + i), int.from_bytes(data[i:i + 4], "little")) for i in range(0, len(data), 4)]

def parse_cheat_codes(text: str) -> List[Tuple[int, int]]:
    """Lee líneas 'AAAAAAAA VVVVVVVV'; ignora líneas vacías y comentarios '//'."""
    pairs: List[Tuple[int, int]] = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("//", 1)[0].strip()
        if not line:
            continue
        m = CODE_LINE_RE.match(line)
        if not m:
            raise ValueError(f"Línea {lineno}: código de trampa inválido: {raw.strip()!r}")
        pairs.append((int(m.group(1), 16), int(m.group(2), 16)))
    return pairs

# ---------------- Desensamblado ----------------

def _comment(ins: DecodedInstruction, ctx: AnalysisContext) -> str:
    parts: List[str] = []
    if ins.annotation:
        parts.append(ins.annotation)
    if ins.comment:
        parts.append(ins.comment[2:] if ins.comment.startswith("; ") else ins.comment)
    ptr = ctx.pointers.get(ins.address)
    if ptr is not None and ptr.resolved:
        desc = f"ptr ${hex8(ptr.target)} ({ptr.size} bytes, {ptr.data_kind})"
        if ptr.is_function:
            name = ctx.functions[ptr.target].name if ptr.target in ctx.functions else "función"
            desc += f" <{name}>"
        parts.append(desc)
    parts.extend(ctx.notes.get(ins.address, ()))
    sources = ctx.xrefs.get(ins.address)
    if sources:
        parts.append("XREF: " + ", ".join("$" + hex8(s) for s in sources))
    return "; " + " ; ".join(parts) if parts else ""

def disassemble_words(pairs: Sequence[Tuple[int, int]], *, catalog: Optional[Catalog] = None) -> DisassemblyResult:
    """Desensambla pares (dirección, palabra); las direcciones no tienen por qué ser contiguas."""
    catalog = catalog or default_catalog()
    first = [decode(w, a, catalog=catalog) for a, w in pairs]
    ctx = analyze(first, reg_name=lambda n: catalog.register_name("gpr", n))
    names = ctx.function_names()
    stream = [decode(w, a, functions=names, catalog=catalog) for a, w in pairs]

    rows: List[DisassemblyRow] = []
    for (address, word), ins in zip(pairs, stream):
        func = ctx.functions.get(ins.address)
        rows.append(DisassemblyRow(
            address=ins.address,
            raw=u32(word).to_bytes(4, "little"),
            label=func.name if func else None,
            mnemonic=ins.mnemonic,
            operands=ins.operands,
            comment=_comment(ins, ctx),
            xrefs=tuple(ctx.xrefs.get(ins.address, ())),
        ))
    return DisassemblyResult(rows, ctx.functions, ctx.pointers, ctx)

def disassemble(buffer: bytes, base_address: int = 0, *, catalog: Optional[Catalog] = None) -> DisassemblyResult:
    return disassemble_words(words_from_buffer(buffer, base_address), catalog=catalog)

def disassemble_codes(text: str, *, catalog: Optional[Catalog] = None) -> DisassemblyResult:
    return disassemble_words(parse_cheat_codes(text), catalog=catalog)
