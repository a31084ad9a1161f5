'''
clase Diagnostic, helpers por severidad y el sumidero de mensajes del compilador
'''

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, List, Optional, Literal

# Severidad de los diagnósticos (en español)
Severity = Literal["error", "advertencia", "nota", "depuracion"]

_SEV_TO_LABEL = {
    "error": "ERROR",
    "advertencia": "ADVERTENCIA",
    "nota": "NOTA",
    "depuracion": "DEBUG",
}

@dataclass(frozen=True)
class Diagnostic:
    """Estructura de un diagnóstico para reportar problemas.

    Abarca errores, advertencias, notas y trazas de depuración, con ubicación
    opcional (archivo y línea), el token que lo provocó y un mensaje de ayuda
    (pista) para orientar la corrección.
    """
    severity: Severity
    message: str
    line: Optional[int] = None
    token: Optional[str] = None
    hint: Optional[str] = None
    file: Optional[str] = None

    def __str__(self) -> str:
        loc = ""
        if self.file is not None:
            loc += f"{self.file}:"
        if self.line is not None:
            loc += f"{self.line}"
        if loc:
            loc = loc.rstrip(":") + ": "
        sev = _SEV_TO_LABEL.get(self.severity, str(self.severity).upper())
        core = f"{sev}: {self.message}"
        if self.token:
            core += f" ['{self.token}']"
        if self.hint:
            core += f"  (pista: {self.hint})"
        return loc + core

    @property
    def is_error(self) -> bool:
        return self.severity == "error"

# Sumidero de mensajes: cualquier callable que acepte un Diagnostic
Sink = Callable[[Diagnostic], None]

def error(message: str, *, line: int | None = None, token: str | None = None,
          file: str | None = None, hint: str | None = None) -> Diagnostic:
    """Crea un diagnóstico de tipo error."""
    return Diagnostic("error", message, line, token, hint, file)

def warning(message: str, *, line: int | None = None, token: str | None = None,
            file: str | None = None, hint: str | None = None) -> Diagnostic:
    """Crea un diagnóstico de tipo advertencia."""
    return Diagnostic("advertencia", message, line, token, hint, file)

def note(message: str, *, line: int | None = None, token: str | None = None,
         file: str | None = None, hint: str | None = None) -> Diagnostic:
    """Crea un diagnóstico de tipo nota."""
    return Diagnostic("nota", message, line, token, hint, file)

def debug(message: str, *, line: int | None = None, token: str | None = None,
          file: str | None = None, hint: str | None = None) -> Diagnostic:
    """Crea un diagnóstico de depuración (resolución de saltos, etiquetas...)."""
    return Diagnostic("depuracion", message, line, token, hint, file)

def collect(into: List[Diagnostic]) -> Sink:
    """Sumidero que acumula los diagnósticos en la lista dada."""
    return into.append

def has_errors(diags: List[Diagnostic]) -> bool:
    return any(d.is_error for d in diags)
