# src/r5900_cds/linker.py
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from .lexer import classify, scan_lines
from .pseudo import memory_size, string_size
from .diagnostics import Diagnostic, debug, warning
from .utils import u32

# ---------- Resultados de la pasada 1 ----------

@dataclass(frozen=True)
class LinkResult:
    labels: Dict[str, int]          # nombre en minúsculas -> dirección
    line_addresses: Dict[int, int]  # línea -> dirección al empezar la línea
    end_address: int
    diagnostics: List[Diagnostic]

# ---------- Tamaños ----------

def emitted_size(kind: str, m: Optional[re.Match]) -> Optional[int]:
    """Bytes que emite una línea ya clasificada; None si la línea no se reconoce.

    Es la misma cuenta que hace la pasada 2 al emitir, de modo que las
    direcciones de ambas pasadas coinciden línea a línea.
    """
    if kind in ("include", "comment", "multi_comment", "address"):
        return 0
    if kind in ("hexcode", "operation"):
        return 4
    if kind == "setreg":
        return 8
    if kind == "mem":
        return memory_size(m.group("op")) if m else None
    if kind == "string":
        return string_size(m.group("text"))
    return None

# ---------- Pasada 1 (mapa de etiquetas) ----------

def build_label_map(source: str, *, file: Optional[str] = None, base_address: int = 0) -> LinkResult:
    labels: Dict[str, int] = {}
    line_addresses: Dict[int, int] = {}
    diags: List[Diagnostic] = []
    cur = u32(base_address)

    for sl in scan_lines(source):
        line_addresses[sl.number] = cur
        kind, m = sl.kind, sl.match

        if kind == "address":
            cur = u32(int(m.group("value"), 16))
            continue

        if kind == "label":
            name = m.group(1).lower()
            if name in labels:
                diags.append(warning(f"Etiqueta redefinida, se conserva la primera: {name}",
                                     line=sl.number, token=name, file=file))
            else:
                labels[name] = cur
                diags.append(debug(f"Etiqueta {name} -> ${cur:08X}", line=sl.number, file=file))
            rest = m.group(2).strip()
            if not rest:
                continue
            kind, m = classify(rest)
            if kind in ("label", "address", "include"):
                # tras 'nombre:' sólo se admite una instrucción o directiva de datos
                kind, m = "unknown", None

        size = emitted_size(kind, m)
        if size is None:
            diags.append(warning("Línea no reconocida", line=sl.number, token=sl.text, file=file))
            continue
        cur = u32(cur + size)

    return LinkResult(labels=labels, line_addresses=line_addresses, end_address=cur, diagnostics=diags)
