'''
bit-twiddling (u32, sign_extend, rangos de campo y números CDS)
'''

from __future__ import annotations
import re

# Máscara para 32 bits sin signo
U32_MASK = 0xFFFFFFFF

# Números aceptados en CDS: $hex, 0xhex o decimal, con signo opcional
NUMBER_RE = re.compile(r"^(?P<sign>[+-]?)(?:\$(?P<dollar>[0-9a-fA-F]+)|0[xX](?P<hex>[0-9a-fA-F]+)|(?P<dec>\d+))$")

def u32(x: int) -> int:
    """Fuerza el valor al rango de 32 bits sin signo."""
    return x & U32_MASK

def sign_extend(x: int, bits: int) -> int:
    """Extiende el signo de x, asumiendo que cabe en 'bits' bits (complemento a dos)."""
    if bits <= 0:
        raise ValueError("bits debe ser positivo")
    mask = (1 << bits) - 1
    x &= mask
    sign_bit = 1 << (bits - 1)
    return (x ^ sign_bit) - sign_bit

def is_unsigned_nbit(x: int, n: int) -> bool:
    """Devuelve True si x está en [0, 2^n) (sin signo de n bits)."""
    if n <= 0:
        raise ValueError("n debe ser positivo")
    return 0 <= x < (1 << n)

def is_signed_nbit(x: int, n: int) -> bool:
    """Devuelve True si x está en [-(2^(n-1)), 2^(n-1)-1] (con signo de n bits)."""
    if n <= 0:
        raise ValueError("n debe ser positivo")
    lo = -(1 << (n - 1))
    hi = (1 << (n - 1)) - 1
    return lo <= x <= hi

def fits_field(x: int, n: int) -> bool:
    """True si x cabe en un campo de n bits, leído con o sin signo."""
    return is_unsigned_nbit(x, n) or is_signed_nbit(x, n)

def hex8(x: int) -> str:
    """Ocho dígitos hex en mayúsculas, el formato de los códigos de trucos."""
    return format(u32(x), "08X")

def hex4(x: int) -> str:
    return format(x & 0xFFFF, "04X")

def parse_number(token: str) -> int:
    """Convierte '$1F', '0x1f', '31' o '-$10' a entero; ValueError si no es número."""
    m = NUMBER_RE.match(token.strip())
    if not m:
        raise ValueError(f"Número inválido: {token}")
    if m.group("dollar") is not None:
        v = int(m.group("dollar"), 16)
    elif m.group("hex") is not None:
        v = int(m.group("hex"), 16)
    else:
        v = int(m.group("dec"), 10)
    return -v if m.group("sign") == "-" else v

def is_power_of_two(x: int) -> bool:
    return x > 0 and (x & (x - 1)) == 0

def words_to_bytes(words, *, little: bool = True) -> bytes:
    """Empaqueta palabras de 32 bits en bytes (little-endian por defecto, como el EE)."""
    order = "little" if little else "big"
    return b"".join(u32(w).to_bytes(4, order) for w in words)
