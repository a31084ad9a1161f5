# src/r5900_cds/encoding.py
from __future__ import annotations
import re
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from .isa import Catalog, InstructionDef, FIELD_KINDS, LANES, default_catalog
from .lexer import split_mnemonic_operands
from .regs import vu_reg_num
from .utils import fits_field, is_signed_nbit, is_unsigned_nbit, parse_number, u32

# ---------------- Errores de codificación ----------------

class EncodeError(ValueError):
    """Error al codificar una instrucción; 'token' es el fragmento que lo provocó."""

    def __init__(self, message: str, token: Optional[str] = None):
        super().__init__(message)
        self.token = token

class UnknownMnemonic(EncodeError):
    pass

class UnknownRegister(EncodeError):
    pass

class MalformedImmediate(EncodeError):
    pass

class OperandMismatch(EncodeError):
    pass

class FieldOverflow(EncodeError):
    pass

# ---------------- Formas de operandos ----------------

PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")
_REG_KINDS = {"gpr", "cop0", "cop1", "vf", "vi"}

def _literal_rx(text: str) -> str:
    out = []
    for ch in text:
        if ch == ",":
            out.append(r"\s*,\s*")
        elif ch == " ":
            out.append(r"\s*")
        elif ch in "()":
            out.append(r"\s*" + re.escape(ch) + r"\s*")
        else:
            out.append(re.escape(ch))
    return "".join(out)

def _placeholder_rx(name: str) -> str:
    kind = FIELD_KINDS[name]
    if kind in _REG_KINDS:
        return rf"(?P<{name}>[A-Za-z$][A-Za-z0-9$]*?)"
    if kind == "lane":
        return rf"(?P<{name}>[xyzwXYZW])"
    if kind == "offset":
        return rf"(?P<{name}>[-+]?\$?[0-9A-Za-z]*)"
    return rf"(?P<{name}>[-+]?\$?[0-9A-Za-z]+)"

@lru_cache(maxsize=None)
def form_regex(form: str) -> re.Pattern:
    """Compila una forma como "{rt}, {offset}({base})" a una expresión regular."""
    parts: List[str] = []
    pos = 0
    for m in PLACEHOLDER_RE.finditer(form):
        parts.append(_literal_rx(form[pos:m.start()]))
        parts.append(_placeholder_rx(m.group(1)))
        pos = m.end()
    parts.append(_literal_rx(form[pos:]))
    return re.compile("".join(parts), re.IGNORECASE)

# ---------------- Resolución de operandos ----------------

def resolve_mnemonic(mnemonic: str, catalog: Catalog) -> Tuple[InstructionDef, Optional[int]]:
    """Devuelve (definición, máscara dest) aceptando sufijos '.xyzw' de las macros VU0."""
    m = mnemonic.strip().lower()
    idef = catalog.find_instruction(m)
    if idef is not None:
        return idef, None
    if "." in m:
        base, suffix = m.rsplit(".", 1)
        idef = catalog.find_instruction(base)
        if idef is not None and idef.has_dest and _is_lane_mask(suffix):
            return idef, dest_mask(suffix)
    raise UnknownMnemonic(f"Instrucción desconocida: {mnemonic}", mnemonic)

def _is_lane_mask(suffix: str) -> bool:
    # Las letras deben ir en orden x, y, z, w sin repetirse; '0' es la máscara vacía
    if suffix == "0":
        return True
    it = iter(LANES)
    return bool(suffix) and all(ch in it for ch in suffix)

def dest_mask(suffix: str) -> int:
    mask = 0
    if suffix == "0":
        return mask
    for ch in suffix.lower():
        mask |= 8 >> LANES.index(ch)
    return mask

def _number(token: str) -> int:
    try:
        return parse_number(token)
    except ValueError:
        raise MalformedImmediate(f"Inmediato inválido: {token}", token) from None

def _register(token: str, kind: str, catalog: Catalog) -> int:
    if kind in ("vf", "vi"):
        try:
            return vu_reg_num(token, kind)
        except ValueError:
            raise UnknownRegister(f"Registro inválido: {token}", token) from None
    reg = catalog.find_register(token, kind)
    if reg is not None:
        return reg.ordinal
    if kind == "cop0" and token.startswith("$") and token[1:].isdigit() and int(token[1:]) < 32:
        return int(token[1:])
    raise UnknownRegister(f"Registro inválido: {token}", token)

def _branch_offset(token: str, address: Optional[int]) -> int:
    digits = token.lstrip("+-")
    digits = digits[1:] if digits.startswith("$") else digits[2:] if digits[:2].lower() == "0x" else ""
    if len(digits) > 4 and address is not None:
        delta = _number(token) - u32(address + 4)
        if delta % 4:
            raise MalformedImmediate(f"Destino de salto no alineado: {token}", token)
        count = delta // 4
        if not is_signed_nbit(count, 16):
            raise FieldOverflow(f"Destino de salto fuera de rango: {token}", token)
        return count & 0xFFFF
    value = _number(token)
    if not fits_field(value, 16):
        raise FieldOverflow(f"Desplazamiento de salto fuera de rango: {token}", token)
    return value & 0xFFFF

def _jump_target(token: str, address: Optional[int]) -> int:
    value = _number(token)
    if not is_unsigned_nbit(value, 32):
        raise FieldOverflow(f"Destino fuera de rango: {token}", token)
    if value & 3:
        raise MalformedImmediate(f"Destino de salto no alineado: {token}", token)
    if address is not None and (value ^ u32(address + 4)) & 0xF0000000:
        raise FieldOverflow(f"Destino fuera del segmento de 256 MB: {token}", token)
    return (value >> 2) & 0x3FFFFFF

def _field_value(name: str, width: int, token: str, idef: InstructionDef,
                 address: Optional[int], catalog: Catalog) -> int:
    kind = FIELD_KINDS[name]
    if kind in _REG_KINDS:
        return _register(token, kind, catalog)
    if kind == "lane":
        return LANES.index(token.lower())
    if name == "offset" and idef.category == "branch":
        return _branch_offset(token, address)
    if kind == "target":
        return _jump_target(token, address)
    if kind == "offset" and token == "":
        return 0
    value = _number(token)
    if kind in ("imm", "offset") and width == 16:
        ok = fits_field(value, 16)
    elif kind == "simm":
        ok = is_signed_nbit(value, width)
    else:
        ok = is_unsigned_nbit(value, width)
    if not ok:
        raise FieldOverflow(f"Valor fuera de rango para '{name}' ({width} bits): {token}", token)
    return value & ((1 << width) - 1)

# ---------------- API ----------------

def encode(mnemonic: str, operands: str = "", *, address: Optional[int] = None,
           catalog: Optional[Catalog] = None) -> int:
    """Codifica una instrucción a su palabra de 32 bits.

    'address' es la dirección de la instrucción; sólo hace falta para aceptar
    destinos absolutos ($XXXXXXXX) en saltos condicionales y para comprobar
    el segmento de los saltos j/jal.
    Lanza una subclase de EncodeError si algo no cuadra.
    """
    catalog = catalog or default_catalog()
    idef, dest = resolve_mnemonic(mnemonic, catalog)
    text = operands.strip()

    match = None
    for form in idef.forms:
        match = form_regex(form).fullmatch(text)
        if match:
            break
    if match is None:
        expected = " | ".join(f"{idef.mnemonic} {f}".strip() for f in idef.forms)
        raise OperandMismatch(
            f"Operandos no válidos para {idef.mnemonic}: se esperaba {expected}", text or mnemonic)

    values: Dict[str, int] = dict(idef.defaults)
    for name, token in match.groupdict().items():
        width = idef.fields[name][1]
        values[name] = _field_value(name, width, token.strip(), idef, address, catalog)
    if idef.has_dest:
        values["dest"] = 0xF if dest is None else dest
    return idef.assemble(values)

def encode_line(text: str, *, address: Optional[int] = None, catalog: Optional[Catalog] = None) -> int:
    """Codifica 'mnemónico operandos' en una sola cadena."""
    mnemonic, operands = split_mnemonic_operands(text)
    if not mnemonic:
        raise UnknownMnemonic("Instrucción vacía", text)
    return encode(mnemonic, operands, address=address, catalog=catalog)
