"""
Instruction trace parsing.

A trace is one instruction per line::

    00400000 lw $4, 0($29) 7fffeffc
    00400004 addiu $5, $29, 4
    0040000c sll $2, $4, 2
    00400014 jal 00400024
    00400018 nop
    00400034 lui $1, 4097
    00400030 beq $4, $0, 00400048
    00400020 syscall

The first token is the instruction address (hex), the second the mnemonic.
Operand requirements depend on the mnemonic family; extra trailing tokens
are ignored. Blank lines and ``#`` comments are skipped. Any other
malformed line raises ``TraceParseError``.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Union

from .errors import TraceParseError
from .isa import InstructionKind, Opcode, reg

_MEM_OPERAND = re.compile(r"^(-?(?:0x[0-9a-f]+|\d+))?\((\$?\w+)\)$", re.IGNORECASE)

# Minimum token counts, address and mnemonic included.
_MIN_TOKENS = {
    Opcode.ADD: 5,
    Opcode.SLL: 5,
    Opcode.ORI: 5,
    Opcode.LUI: 4,
    Opcode.LW: 5,
    Opcode.SW: 5,
}


@dataclass(frozen=True)
class Instruction:
    """One parsed trace line.

    ``src1`` doubles as the stored register for ``sw`` and the first
    compared register for ``beq``; ``src2`` as the second. Operands the
    model does not track are None.
    """

    address: int
    opcode: Opcode
    mnemonic: str
    dest: Optional[int] = None
    src1: Optional[int] = None
    src2: Optional[int] = None
    immediate: Optional[int] = None
    base: Optional[int] = None
    offset: Optional[int] = None
    data_address: int = 0
    text: str = ""

    @property
    def kind(self) -> InstructionKind:
        return self.opcode.kind


def _is_register(token: str) -> bool:
    return token.startswith("$")


def _parse_register(token: str, line_no: Optional[int], line: str) -> int:
    try:
        return reg(token.rstrip(","))
    except KeyError:
        raise TraceParseError(f"bad register {token!r}", line_no, line) from None


def _parse_int(token: str, line_no: Optional[int], line: str, base: int = 0) -> int:
    token = token.rstrip(",")
    try:
        return int(token, base)
    except ValueError:
        pass
    # int("010", 0) is rejected; plain decimal with leading zeros is still valid.
    if base == 0:
        try:
            return int(token, 10)
        except ValueError:
            pass
    raise TraceParseError(f"bad number {token!r}", line_no, line)


def parse_line(line: str, line_no: Optional[int] = None) -> Optional[Instruction]:
    """Parse one trace line. Returns None for blank and comment lines."""
    text = line.strip()
    if not text or text.startswith("#"):
        return None

    tokens = text.split()
    if len(tokens) < 2:
        raise TraceParseError("Malformed instruction", line_no, text)

    address = _parse_int(tokens[0], line_no, text, 16)
    mnemonic = tokens[1].lower()
    opcode = Opcode.from_mnemonic(mnemonic)
    if opcode is None:
        raise TraceParseError(
            f"Do not know how to process instruction: {mnemonic} at address {address:#x}",
            line_no,
            text,
        )

    need = _MIN_TOKENS.get(opcode, 2)
    if len(tokens) < need:
        raise TraceParseError(
            f"Malformed {opcode.kind.value.upper()} instruction ({mnemonic}) at address "
            f"{address:#x}: expected at least {need} tokens, got {len(tokens)}",
            line_no,
            text,
        )

    if opcode is Opcode.LUI:
        return Instruction(
            address,
            opcode,
            mnemonic,
            dest=_parse_register(tokens[2], line_no, text),
            immediate=_parse_int(tokens[3], line_no, text),
            text=text,
        )

    if opcode.kind is InstructionKind.RTYPE:
        dest = _parse_register(tokens[2], line_no, text)
        src1 = _parse_register(tokens[3], line_no, text)
        if _is_register(tokens[4]):
            return Instruction(
                address,
                opcode,
                mnemonic,
                dest=dest,
                src1=src1,
                src2=_parse_register(tokens[4], line_no, text),
                text=text,
            )
        return Instruction(
            address,
            opcode,
            mnemonic,
            dest=dest,
            src1=src1,
            immediate=_parse_int(tokens[4], line_no, text),
            text=text,
        )

    if opcode in (Opcode.LW, Opcode.SW):
        register = _parse_register(tokens[2], line_no, text)
        m = _MEM_OPERAND.match(tokens[3].rstrip(","))
        if not m:
            raise TraceParseError(f"Bad memory operand {tokens[3]!r}", line_no, text)
        offset = _parse_int(m.group(1), line_no, text) if m.group(1) else 0
        base = _parse_register(m.group(2), line_no, text)
        data_address = _parse_int(tokens[4], line_no, text, 16)
        # Base registers are parsed but not tracked for hazards.
        if opcode is Opcode.LW:
            return Instruction(
                address,
                opcode,
                mnemonic,
                dest=register,
                offset=offset,
                data_address=data_address,
                text=text,
            )
        return Instruction(
            address,
            opcode,
            mnemonic,
            src1=register,
            offset=offset,
            data_address=data_address,
            text=text,
        )

    # beq, jumps, syscall and nop carry no modelled operands.
    return Instruction(address, opcode, mnemonic, text=text)


def parse_lines(lines: Iterable[str]) -> Iterator[Instruction]:
    """Yield instructions from an iterable of trace lines, numbering from 1."""
    for line_no, line in enumerate(lines, start=1):
        instruction = parse_line(line, line_no)
        if instruction is not None:
            yield instruction


def read_trace(path: Union[str, "os.PathLike[str]"]) -> List[Instruction]:
    """Parse a whole trace file. Stops at the first malformed line."""
    with open(path, "r") as f:
        return list(parse_lines(f))
