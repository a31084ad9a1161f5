from __future__ import annotations
from typing import List, Tuple

from .utils import hex4, is_power_of_two, is_signed_nbit, u32, words_to_bytes

# Registro de trabajo de la macro mem[...]
SCRATCH = "t9"
MEM_OPERATORS = ("=", "+=", "-=", "*=", "/=")

# (mnemónico, operandos) listos para encode()
Step = Tuple[str, str]

class MacroError(ValueError):
    def __init__(self, message: str, token: str):
        super().__init__(message)
        self.token = token

def setreg_expand(register: str, value: int) -> List[Step]:
    """lui + addiu; la mitad alta se corrige cuando la baja es negativa como inmediato de 16 bits."""
    v = u32(value)
    upper = ((v + 0x8000) >> 16) & 0xFFFF
    low = v & 0xFFFF
    return [("lui", f"{register}, ${hex4(upper)}"),
            ("addiu", f"{register}, {register}, ${hex4(low)}")]

def memory_size(operator: str) -> int:
    return 8 if operator == "=" else 12

def memory_expand(register: str, operator: str, offset: int, value: int) -> List[Step]:
    """mem[offset] reg OP value -> (carga) + cálculo + guardado sobre t9."""
    if not 0 <= offset <= 0x7FFF:
        # sw extiende el signo: 0x8000-0xFFFF caerían por debajo de la base
        raise MacroError("Desplazamiento fuera de rango (0x0-0x7FFF)", hex(offset))
    cell = f"${hex4(offset)}({register})"
    store = ("sw", f"{SCRATCH}, {cell}")
    if operator == "=":
        if not (-0x8000 <= value <= 0xFFFF):
            raise MacroError("Valor fuera de rango (16 bits)", str(value))
        load_imm = ("addiu" if value < 0 else "ori", f"{SCRATCH}, zero, ${hex4(value)}")
        return [load_imm, store]

    if operator in ("+=", "-="):
        delta = value if operator == "+=" else -value
        if not is_signed_nbit(delta, 16):
            raise MacroError("Valor fuera de rango (16 bits con signo)", str(value))
        compute = ("addiu", f"{SCRATCH}, {SCRATCH}, ${hex4(delta)}")
    elif operator in ("*=", "/="):
        if not is_power_of_two(value) or value.bit_length() > 32:
            raise MacroError(f"'{operator}' requiere una potencia de dos", str(value))
        shift = value.bit_length() - 1
        compute = ("sll" if operator == "*=" else "srl", f"{SCRATCH}, {SCRATCH}, {shift}")
    else:
        raise MacroError("Operador inválido", operator)
    return [("lw", f"{SCRATCH}, {cell}"), compute, store]

def string_size(text: str) -> int:
    """Bytes que ocupa la cadena: texto + NUL, redondeado a palabra."""
    return (len(text) + 1 + 3) // 4 * 4

def string_words(text: str) -> List[int]:
    """ASCII + NUL, relleno a 4 bytes, palabras little-endian."""
    data = text.encode("ascii") + b"\x00"
    data += b"\x00" * (-len(data) % 4)
    return [int.from_bytes(data[i:i + 4], "little") for i in range(0, len(data), 4)]

def words_to_string(words) -> str:
    """Inversa de string_words: corta en el primer NUL."""
    return words_to_bytes(words).split(b"\x00", 1)[0].decode("ascii")
