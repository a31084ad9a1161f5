'''
bancos de registros del EE (GPR, COP0, COP1) y nombres de registros VU0
'''

from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Dict, List, Literal, Tuple

RegKind = Literal["gpr", "cop0", "cop1"]

@dataclass(frozen=True)
class Register:
    """Un registro del catálogo: nombre visible, descripción, codificación de 5 bits y ordinal."""
    name: str
    description: str
    binary: str
    ordinal: int

GPR_NAMES: Tuple[str, ...] = (
    "zero", "at", "v0", "v1", "a0", "a1", "a2", "a3",
    "t0", "t1", "t2", "t3", "t4", "t5", "t6", "t7",
    "s0", "s1", "s2", "s3", "s4", "s5", "s6", "s7",
    "t8", "t9", "k0", "k1", "gp", "sp", "fp", "ra",
)

# Alias aceptados al ensamblar (nunca se emiten al desensamblar)
GPR_ALIASES: Dict[str, str] = {"s8": "fp", "r0": "zero"}

_GPR_DESC = {
    "zero": "Constante cero", "at": "Temporal del ensamblador",
    "v0": "Valor de retorno", "v1": "Valor de retorno",
    "k0": "Reservado al kernel", "k1": "Reservado al kernel",
    "gp": "Puntero global", "sp": "Puntero de pila",
    "fp": "Puntero de marco", "ra": "Dirección de retorno",
}

def _gpr_description(name: str) -> str:
    if name in _GPR_DESC:
        return _GPR_DESC[name]
    return {"a": "Argumento", "t": "Temporal", "s": "Guardado"}[name[0]]

COP0_NAMES: Tuple[str, ...] = (
    "Index", "Random", "EntryLo0", "EntryLo1", "Context", "PageMask", "Wired", "Reserved7",
    "BadVAddr", "Count", "EntryHi", "Compare", "Status", "Cause", "EPC", "PRId",
    "Config", "Reserved17", "Reserved18", "Reserved19", "Reserved20", "Reserved21", "Reserved22", "BadPAddr",
    "Debug", "Perf", "Reserved26", "Reserved27", "TagLo", "TagHi", "ErrorEPC", "Reserved31",
)

COP1_NAMES: Tuple[str, ...] = tuple(f"f{i}" for i in range(32))

def _bank(names: Tuple[str, ...], describe) -> List[Register]:
    return [Register(n, describe(n), format(i, "05b"), i) for i, n in enumerate(names)]

def build_register_banks() -> Dict[RegKind, List[Register]]:
    """Construye los tres bancos disjuntos del catálogo."""
    return {
        "gpr": _bank(GPR_NAMES, _gpr_description),
        "cop0": _bank(COP0_NAMES, lambda n: f"Registro de control COP0 {n}"),
        "cop1": _bank(COP1_NAMES, lambda n: f"Registro de coma flotante {n}"),
    }

# ---------------- Registros VU0 (macro modo COP2) ----------------

VF_RE = re.compile(r"^vf(\d{1,2})$", re.IGNORECASE)
VI_RE = re.compile(r"^vi(\d{1,2})$", re.IGNORECASE)

def vu_reg_num(token: str, prefix: str) -> int:
    """Índice 0..31 de 'vfN' / 'viN'; ValueError si no lo es."""
    m = (VF_RE if prefix == "vf" else VI_RE).match(token.strip())
    if m:
        n = int(m.group(1))
        if 0 <= n <= 31:
            return n
    raise ValueError(f"Registro inválido: {token}")

