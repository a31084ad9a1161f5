from __future__ import annotations
from typing import Iterable, List, Sequence, Tuple

from .ast import (
    Address, HexCode, Label, Operation, OperationBranch, OperationJump, SetReg, String,
    Memory, Include, SingleLineComment, MultiLineComment, SyntaxNode,
)
from .utils import hex8

# ---------------- Códigos de trampa ----------------

def code_pairs(nodes: Iterable[SyntaxNode]) -> List[Tuple[int, int]]:
    """Pares (dirección, palabra) en el orden de los nodos."""
    return [w for n in nodes for w in n.words()]

def to_cheat_lines(nodes: Iterable[SyntaxNode]) -> List[str]:
    return [f"{hex8(a)} {hex8(v)}" for a, v in code_pairs(nodes)]

def to_cheat_code(nodes: Iterable[SyntaxNode]) -> str:
    """Una línea 'AAAAAAAA VVVVVVVV' por palabra, separadas por '\\n' y sin salto final."""
    return "\n".join(to_cheat_lines(nodes))

# ---------------- Traza de depuración ----------------

def node_kind(node: SyntaxNode) -> str:
    # Las subclases de Operation van antes que Operation
    if isinstance(node, OperationBranch):
        return "OperationBranch"
    if isinstance(node, OperationJump):
        return "OperationJump"
    if isinstance(node, Operation):
        return "Operation"
    if isinstance(node, Address):
        return "Address"
    if isinstance(node, HexCode):
        return "HexCode"
    if isinstance(node, Label):
        return "Label"
    if isinstance(node, SetReg):
        return "SetReg"
    if isinstance(node, String):
        return "String"
    if isinstance(node, Memory):
        return "Memory"
    if isinstance(node, Include):
        return "Include"
    if isinstance(node, SingleLineComment):
        return "SingleLineComment"
    if isinstance(node, MultiLineComment):
        return "MultiLineComment"
    raise TypeError(f"Nodo desconocido: {type(node).__name__}")

def debug_trace(nodes: Iterable[SyntaxNode]) -> List[str]:
    """Por nodo: '[Line #n]<TAB>Tipo<TAB>[texto]' y una línea '>>ADDR VALUE' por palabra emitida."""
    out: List[str] = []
    for n in nodes:
        out.append(f"[Line #{n.line}]\t{node_kind(n)}\t[{n.text}]")
        out.extend(f">>{hex8(a)} {hex8(v)}" for a, v in n.words())
    return out

# ---------------- Listado del desensamblador ----------------

def listing_lines(rows: Sequence) -> List[str]:
    """Columnas: dirección, bytes crudos, mnemónico, operandos y comentario.

    Las filas que abren función van precedidas por una línea 'nombre:'.
    """
    out: List[str] = []
    for r in rows:
        if r.label:
            if out:
                out.append("")
            out.append(f"{r.label}:")
        raw = " ".join(f"{b:02X}" for b in r.raw)
        line = f"{hex8(r.address)}  {raw}  {r.mnemonic:<12}{r.operands:<28}{r.comment}"
        out.append(line.rstrip())
    return out

# ---------------- Ficheros ----------------

def write_cheat_code(nodes: Iterable[SyntaxNode], path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(to_cheat_code(nodes))

def write_listing(rows: Sequence, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        for line in listing_lines(rows):
            f.write(line + "\n")
