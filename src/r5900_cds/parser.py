# src/r5900_cds/parser.py
from __future__ import annotations
import re
from typing import Dict, List, Tuple, Optional

from .lexer import SourceLine, classify, scan_lines
from .ast import (
    Address, HexCode, Label, Operation, OperationBranch, OperationJump, SetReg, String,
    Memory, Include, SingleLineComment, MultiLineComment, SyntaxNode,
)
from .encoding import EncodeError, encode, resolve_mnemonic
from .isa import Catalog, default_catalog
from .pseudo import MEM_OPERATORS, MacroError, memory_expand, memory_size, setreg_expand, string_size, string_words
from .diagnostics import Diagnostic, debug, error
from .utils import hex4, hex8, is_signed_nbit, parse_number, u32

def parse(source: str, labels: Dict[str, int], *, file: Optional[str] = None,
          catalog: Optional[Catalog] = None, base_address: int = 0) -> Tuple[List[SyntaxNode], List[Diagnostic]]:
    """
    Pasada 2: devuelve (nodes, diagnostics) con las direcciones y palabras resueltas.

    Reglas:
      - Orden de clasificación: include, comentario multilínea, comentario '//',
        address, hexcode, mem[...], setreg, etiqueta, string y operación genérica.
      - 'labels' es el mapa de la pasada 1; los saltos a etiquetas se resuelven con él.
      - Un error anula sólo el nodo de su línea; la dirección avanza igual que en la pasada 1.
    """
    catalog = catalog or default_catalog()
    nodes: List[SyntaxNode] = []
    diags: List[Diagnostic] = []
    cur = u32(base_address)

    def fail(message: str, sl: SourceLine, token: Optional[str] = None, hint: Optional[str] = None) -> None:
        diags.append(error(message, line=sl.number, token=token, file=file, hint=hint))

    def encode_steps(steps, sl: SourceLine, start: int) -> Optional[Tuple[Operation, ...]]:
        ops = []
        for i, (mnemonic, operands) in enumerate(steps):
            addr = u32(start + 4 * i)
            try:
                word = encode(mnemonic, operands, address=addr, catalog=catalog)
            except EncodeError as ex:
                fail(str(ex), sl, ex.token)
                return None
            ops.append(Operation(sl.number, sl.raw, addr, mnemonic, operands, word))
        return tuple(ops)

    def handle_mem(sl: SourceLine, m: re.Match) -> None:
        off_tok, reg, op, val_tok = m.group("offset").strip(), m.group("reg"), m.group("op"), m.group("value")
        if not off_tok.lower().startswith("0x"):
            fail("El desplazamiento de mem[] debe empezar por 0x", sl, off_tok)
            return
        try:
            offset = int(off_tok, 16)
        except ValueError:
            fail("Desplazamiento de mem[] inválido", sl, off_tok)
            return
        if not 0 <= offset <= 0x7FFF:
            fail("Desplazamiento de mem[] fuera de rango (0x0-0x7FFF)", sl, off_tok)
            return
        if catalog.find_register(reg, "gpr") is None:
            fail("Registro inválido en mem[]", sl, reg)
            return
        if op not in MEM_OPERATORS:
            fail("Operador inválido en mem[]", sl, op, hint="use =, +=, -=, *= o /=")
            return
        try:
            value = parse_number(val_tok)
            steps = memory_expand(reg.lower(), op, offset, value)
        except MacroError as ex:
            fail(str(ex), sl, ex.token)
            return
        except ValueError as ex:
            fail(str(ex), sl, val_tok)
            return
        ops = encode_steps(steps, sl, cur)
        if ops is not None:
            nodes.append(Memory(sl.number, sl.raw, cur, reg.lower(), op, offset, value, ops))

    def handle_operation(sl: SourceLine, m: re.Match) -> None:
        mnemonic = m.group("cmd").lower()
        args = (m.group("args") or "").strip()
        label = m.group("label")
        if label is None:
            try:
                word = encode(mnemonic, args, address=cur, catalog=catalog)
            except EncodeError as ex:
                fail(str(ex), sl, ex.token)
                return
            nodes.append(Operation(sl.number, sl.raw, cur, mnemonic, args, word))
            return

        name = label.lower()
        if name not in labels:
            fail("Etiqueta no definida", sl, label)
            return
        target = labels[name]
        try:
            idef, _dest = resolve_mnemonic(mnemonic, catalog)
        except EncodeError as ex:
            fail(str(ex), sl, ex.token)
            return
        head = args.rstrip().rstrip(",").strip()
        prefix = f"{head}, " if head else ""

        if idef.category == "branch":
            delta = target - u32(cur + 4)
            count = delta // 4
            if delta % 4:
                fail("La etiqueta no está alineada a palabra", sl, label)
                return
            if not is_signed_nbit(count, 16):
                fail("Etiqueta fuera del alcance del salto (16 bits)", sl, label)
                return
            operands = prefix + "$" + hex4(count)
            node_type = OperationBranch
            extra = {"offset": count}
        elif "target" in idef.fields:
            operands = prefix + "$" + hex8(target)
            node_type = OperationJump
            extra = {}
        else:
            fail(f"{mnemonic} no admite una etiqueta como operando", sl, label)
            return

        try:
            word = encode(mnemonic, operands, address=cur, catalog=catalog)
        except EncodeError as ex:
            fail(str(ex), sl, ex.token)
            return
        nodes.append(node_type(sl.number, sl.raw, cur, mnemonic, operands, word,
                               label=name, target=target, **extra))
        diags.append(debug(f"{mnemonic} -> {name} (${target:08X})", line=sl.number, file=file))

    def emit(sl: SourceLine, kind: str, m: Optional[re.Match]) -> None:
        nonlocal cur
        if kind == "multi_comment":
            nodes.append(MultiLineComment(sl.number, sl.raw))
        elif kind == "comment":
            nodes.append(SingleLineComment(sl.number, sl.raw))
        elif kind == "include":
            nodes.append(Include(sl.number, sl.raw, m.group("path")))
        elif kind == "address":
            value = int(m.group("value"), 16)
            if value > 0xFFFFFFFF:
                fail("Dirección fuera de rango (32 bits)", sl, m.group("value"))
            cur = u32(value)
            nodes.append(Address(sl.number, sl.raw, cur))
        elif kind == "hexcode":
            value = int(m.group("value"), 16)
            if value > 0xFFFFFFFF:
                fail("Valor de hexcode fuera de rango (32 bits)", sl, m.group("value"))
            else:
                nodes.append(HexCode(sl.number, sl.raw, cur, value))
            cur = u32(cur + 4)
        elif kind == "mem":
            if m is None:
                fail("Macro mem[] mal formada", sl, sl.text, hint="mem[0xOFFSET] registro OP valor")
                return
            handle_mem(sl, m)
            cur = u32(cur + memory_size(m.group("op")))
        elif kind == "setreg":
            reg, value = m.group("reg").lower(), int(m.group("value"), 16)
            if value > 0xFFFFFFFF:
                fail("Valor de setreg fuera de rango (32 bits)", sl, m.group("value"))
            else:
                ops = encode_steps(setreg_expand(reg, value), sl, cur)
                if ops is not None:
                    nodes.append(SetReg(sl.number, sl.raw, cur, reg, value, ops))
            cur = u32(cur + 8)
        elif kind == "label":
            name = m.group(1).lower()
            nodes.append(Label(sl.number, sl.raw, name, cur))
            rest = m.group(2).strip()
            if rest:
                rkind, rm = classify(rest)
                if rkind in ("label", "address", "include"):
                    rkind, rm = "unknown", None
                emit(sl, rkind, rm)
        elif kind == "string":
            text = m.group("text")
            try:
                words = string_words(text)
            except UnicodeEncodeError:
                fail("La cadena sólo admite caracteres ASCII", sl, text)
            else:
                codes = tuple(HexCode(sl.number, sl.raw, u32(cur + 4 * i), w) for i, w in enumerate(words))
                nodes.append(String(sl.number, sl.raw, cur, text, codes))
            cur = u32(cur + string_size(text))
        elif kind == "operation":
            handle_operation(sl, m)
            cur = u32(cur + 4)
        else:
            fail("Línea no reconocida", sl, sl.text)

    for sl in scan_lines(source):
        emit(sl, sl.kind, sl.match)

    return nodes, diags
