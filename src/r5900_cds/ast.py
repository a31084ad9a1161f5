from __future__ import annotations
from dataclasses import dataclass, field
from typing import Tuple, Union

# Cada nodo guarda la línea de origen y el texto crudo de esa línea.
# Los nodos que emiten código exponen words(): pares (dirección, palabra).

@dataclass(frozen=True)
class Address:
    line: int
    text: str
    address: int

    def words(self) -> Tuple[Tuple[int, int], ...]:
        return ()

@dataclass(frozen=True)
class HexCode:
    line: int
    text: str
    address: int
    value: int

    def words(self) -> Tuple[Tuple[int, int], ...]:
        return ((self.address, self.value),)

@dataclass(frozen=True)
class Label:
    line: int
    text: str
    name: str      # en minúsculas
    address: int

    def words(self) -> Tuple[Tuple[int, int], ...]:
        return ()

@dataclass(frozen=True)
class Operation:
    line: int
    text: str
    address: int
    mnemonic: str
    operands: str
    word: int

    def words(self) -> Tuple[Tuple[int, int], ...]:
        return ((self.address, self.word),)

@dataclass(frozen=True)
class OperationBranch(Operation):
    label: str = ""
    target: int = 0
    offset: int = 0    # en instrucciones, relativo a address + 4

@dataclass(frozen=True)
class OperationJump(Operation):
    label: str = ""
    target: int = 0

@dataclass(frozen=True)
class SetReg:
    line: int
    text: str
    address: int
    register: str
    value: int
    operations: Tuple[Operation, ...] = field(default_factory=tuple)

    def words(self) -> Tuple[Tuple[int, int], ...]:
        return tuple(w for op in self.operations for w in op.words())

@dataclass(frozen=True)
class String:
    line: int
    text: str
    address: int
    value: str
    codes: Tuple[HexCode, ...] = field(default_factory=tuple)

    def words(self) -> Tuple[Tuple[int, int], ...]:
        return tuple(w for hc in self.codes for w in hc.words())

@dataclass(frozen=True)
class Memory:
    line: int
    text: str
    address: int
    register: str
    operator: str
    offset: int
    value: int
    operations: Tuple[Operation, ...] = field(default_factory=tuple)

    def words(self) -> Tuple[Tuple[int, int], ...]:
        return tuple(w for op in self.operations for w in op.words())

@dataclass(frozen=True)
class Include:
    line: int
    text: str
    path: str

    def words(self) -> Tuple[Tuple[int, int], ...]:
        return ()

@dataclass(frozen=True)
class SingleLineComment:
    line: int
    text: str

    def words(self) -> Tuple[Tuple[int, int], ...]:
        return ()

@dataclass(frozen=True)
class MultiLineComment:
    line: int
    text: str

    def words(self) -> Tuple[Tuple[int, int], ...]:
        return ()

SyntaxNode = Union[
    Address, HexCode, Label, OperationBranch, OperationJump, Operation,
    SetReg, String, Memory, Include, SingleLineComment, MultiLineComment,
]
