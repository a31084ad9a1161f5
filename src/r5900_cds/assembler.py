from __future__ import annotations
import argparse, json, os, sys
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from .ast import Include, SyntaxNode
from .diagnostics import Diagnostic, Sink, error, has_errors
from .isa import Catalog, default_catalog
from .linker import build_label_map
from .parser import parse
from .utils import parse_number
from .writers import code_pairs, debug_trace, to_cheat_code, write_listing, listing_lines

# Devuelve el texto de un fichero; lanza OSError si no puede leerlo
Loader = Callable[[str], str]

# Límite de anidamiento de include aunque no haya ciclo
MAX_INCLUDE_DEPTH = 32

def read_file(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()

@dataclass
class CompileResult:
    nodes: List[SyntaxNode] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not has_errors(self.diagnostics)

    @property
    def codes(self) -> List[Tuple[int, int]]:
        return code_pairs(self.nodes)

    def cheat_code(self) -> str:
        return to_cheat_code(self.nodes)

    def debug_trace(self) -> List[str]:
        return debug_trace(self.nodes)

def compile_text(source: str, origin_path: Optional[str] = None, *, catalog: Optional[Catalog] = None,
                 sink: Optional[Sink] = None, loader: Optional[Loader] = None,
                 base_address: int = 0) -> CompileResult:
    """Compila un fuente CDS: PASADA 1 (etiquetas), PASADA 2 (nodos) y luego los include.

    Los nodos de cada include se añaden detrás de los del fichero que lo incluye;
    cada fichero se compila con su propio mapa de etiquetas. Todos los diagnósticos
    se devuelven en el resultado y, si hay sink, también se le envían.
    """
    result = CompileResult()
    _compile(source, origin_path, result, catalog or default_catalog(), sink, loader or read_file,
             base_address, ())
    return result

def compile_file(path: str, **kwargs) -> CompileResult:
    """Lee 'path' y lo compila; un OSError de lectura se propaga al llamador."""
    return compile_text(read_file(path), path, **kwargs)

def _compile(source: str, origin: Optional[str], result: CompileResult, catalog: Catalog,
             sink: Optional[Sink], loader: Loader, base_address: int, stack: Tuple[str, ...]) -> None:
    def report(diags: List[Diagnostic]) -> None:
        result.diagnostics.extend(diags)
        if sink is not None:
            for d in diags:
                sink(d)

    link = build_label_map(source, file=origin, base_address=base_address)
    report(link.diagnostics)
    nodes, diags = parse(source, link.labels, file=origin, catalog=catalog, base_address=base_address)
    report(diags)
    result.nodes.extend(nodes)

    here = os.path.dirname(origin) if origin else ""
    for inc in (n for n in nodes if isinstance(n, Include)):
        path = os.path.normpath(os.path.join(here, inc.path))
        if path in stack or path == (os.path.normpath(origin) if origin else None):
            report([error("Inclusión cíclica", line=inc.line, token=inc.path, file=origin)])
            continue
        if len(stack) >= MAX_INCLUDE_DEPTH:
            report([error("Demasiados include anidados", line=inc.line, token=inc.path, file=origin)])
            continue
        try:
            text = loader(path)
        except OSError as ex:
            report([error(f"No se pudo leer el include: {ex}", line=inc.line, token=inc.path, file=origin)])
            continue
        inner = stack + ((os.path.normpath(origin),) if origin else ())
        _compile(text, path, result, catalog, sink, loader, 0, inner)

# ---------------- CLI ----------------

def _print_diags(diags: List[Diagnostic], verbose: bool) -> None:
    for d in diags:
        if d.severity == "depuracion" and not verbose:
            continue
        print(d, file=sys.stderr)

def _cmd_compile(args) -> int:
    try:
        source = read_file(args.source)
    except OSError as ex:
        print(f"ERROR: no pude leer {args.source}: {ex}", file=sys.stderr)
        return 2

    result = compile_text(source, args.source)
    _print_diags(result.diagnostics, args.verbose)

    if args.json:
        # Con --json se informa también de los fallos
        payload = json.dumps({"cheatCodes": result.cheat_code(), "debugMessages": result.debug_trace()}, indent=2)
    else:
        payload = result.cheat_code()
    if not result.ok:
        if args.json:
            print(payload)
        return 1

    try:
        if args.output:
            with open(args.output, "w", encoding="utf-8") as f:
                f.write(payload)
        else:
            print(payload)
    except OSError as ex:
        print(f"ERROR al escribir salidas: {ex}", file=sys.stderr)
        return 3

    if args.trace and not args.json:
        print("\n".join(result.debug_trace()))
    if args.output:
        print(f"OK: {len(result.codes)} códigos → {args.output}", file=sys.stderr)
    return 0

def _cmd_decompile(args) -> int:
    # Importación diferida: el compilador no necesita el analizador
    from .disassembler import disassemble, disassemble_codes
    try:
        if args.codes:
            result = disassemble_codes(read_file(args.input))
        else:
            with open(args.input, "rb") as f:
                result = disassemble(f.read(), args.base)
    except OSError as ex:
        print(f"ERROR: no pude leer {args.input}: {ex}", file=sys.stderr)
        return 2
    except ValueError as ex:
        print(f"ERROR: {ex}", file=sys.stderr)
        return 2

    try:
        if args.output:
            write_listing(result.rows, args.output)
        else:
            print("\n".join(listing_lines(result.rows)))
    except OSError as ex:
        print(f"ERROR al escribir salidas: {ex}", file=sys.stderr)
        return 3
    return 0

def main(argv=None) -> int:
    ap = argparse.ArgumentParser(prog="r5900-cds", description="Compilador CDS y desensamblador para el EE (R5900)")
    sub = ap.add_subparsers(dest="command", required=True)

    c = sub.add_parser("compile", help="compila un fuente CDS a códigos de trampa")
    c.add_argument("source", help="archivo .cds de entrada")
    c.add_argument("-o", "--output", help="archivo de salida (por defecto, stdout)")
    c.add_argument("--trace", action="store_true", help="muestra la traza de depuración por nodo")
    c.add_argument("--json", action="store_true", help="salida JSON con cheatCodes y debugMessages")
    c.add_argument("-v", "--verbose", action="store_true", help="muestra también los diagnósticos de depuración")
    c.set_defaults(func=_cmd_compile)

    d = sub.add_parser("decompile", help="desensambla un binario o una lista de códigos")
    d.add_argument("input", help="binario crudo (o texto de códigos con --codes)")
    d.add_argument("--base", type=parse_number, default=0, help="dirección de carga del binario ($hex, 0xhex o decimal)")
    d.add_argument("--codes", action="store_true", help="la entrada son líneas 'AAAAAAAA VVVVVVVV'")
    d.add_argument("-o", "--output", help="archivo de salida (por defecto, stdout)")
    d.set_defaults(func=_cmd_decompile)

    args = ap.parse_args(argv)
    return args.func(args)

if __name__ == "__main__":
    raise SystemExit(main())
