from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Iterator, Optional

# Line grammar of CDS. Both passes classify lines through scan_lines(), in this order.
INCLUDE_RE = re.compile(r'^include\s+"(?P<path>.*?)"$', re.IGNORECASE)
ADDRESS_RE = re.compile(r"^address\s+\$(?P<value>[0-9a-f]+)$", re.IGNORECASE)
HEXCODE_RE = re.compile(r"^hexcode\s+\$(?P<value>[0-9a-f]+)$", re.IGNORECASE)
MEM_RE = re.compile(
    r"^mem\[(?P<offset>[^\]]*)\]\s*(?P<reg>\w+)\s*(?P<op>[^\s\w$]*=)\s*(?P<value>\S+)$",
    re.IGNORECASE,
)
SETREG_RE = re.compile(r"^setreg\s+(?P<reg>\w+)\s*,\s*\$(?P<value>[0-9a-f]+)$", re.IGNORECASE)
LABEL_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*):\s*(.*)$")
STRING_RE = re.compile(r'^string\s+"(?P<text>.*)"$', re.IGNORECASE)
OPERATION_RE = re.compile(
    r"^(?P<cmd>[a-z_][a-z0-9_.]*)(?:\s+(?P<args>[^:]*?))?\s*(?::(?P<label>[a-z_][a-z0-9_]*))?$",
    re.IGNORECASE,
)

def comment_start(line: str) -> int:
    """Index of the first '//' or '/*' outside double quotes, or -1."""
    quoted = False
    for i, ch in enumerate(line):
        if ch == '"':
            quoted = not quoted
        elif ch == "/" and not quoted and line[i + 1:i + 2] in ("/", "*"):
            return i
    return -1

def strip_comment(line: str) -> str:
    """Remove a trailing '//' or '/* */' comment that is not inside double quotes."""
    i = comment_start(line)
    return (line if i < 0 else line[:i]).strip()

def split_mnemonic_operands(line: str):
    s = line.strip()
    if not s:
        return "", ""
    parts = s.split(None, 1)
    if len(parts) == 1:
        return parts[0].lower(), ""
    return parts[0].lower(), parts[1].strip()

def classify(text: str):
    """Return (kind, match) for a comment-free, non-empty line."""
    for kind, rx in (("include", INCLUDE_RE), ("address", ADDRESS_RE), ("hexcode", HEXCODE_RE)):
        m = rx.match(text)
        if m:
            return kind, m
    if text[:4].lower() == "mem[":
        return "mem", MEM_RE.match(text)
    for kind, rx in (("setreg", SETREG_RE), ("label", LABEL_RE), ("string", STRING_RE),
                     ("operation", OPERATION_RE)):
        m = rx.match(text)
        if m:
            return kind, m
    return "unknown", None

@dataclass(frozen=True)
class SourceLine:
    number: int
    raw: str
    text: str
    kind: str
    match: Optional[re.Match]

def scan_lines(source: str) -> Iterator[SourceLine]:
    """Yield every non-blank line with its classification.

    Multi-line comments start with '/*' and run up to the line containing '*/';
    each of their lines is yielded with kind 'multi_comment'. A block opened
    after code keeps that code and swallows the following lines until '*/'.
    """
    in_comment = False
    for number, raw in enumerate(source.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue
        if in_comment or line.startswith("/*"):
            in_comment = "*/" not in (line[2:] if not in_comment else line)
            yield SourceLine(number, line, line, "multi_comment", None)
            continue
        if line.startswith("//"):
            yield SourceLine(number, line, line, "comment", None)
            continue
        text = strip_comment(line)
        start = comment_start(line)
        if start >= 0 and line.startswith("/*", start):
            # block opened after code: the rest of the block is comment
            in_comment = "*/" not in line[start + 2:]
        kind, m = classify(text)
        yield SourceLine(number, line, text, kind, m)
