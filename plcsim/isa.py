"""
MIPS register names and opcode tags.

Provides:
- ``reg``: Register lookup (``reg.SP`` → 29, ``reg("$sp")`` → 29, ``reg("$5")`` → 5)
- ``reg_name(idx)``: Index to ABI name (``reg_name(29)`` → ``"sp"``)
- ``InstructionKind``: the instruction classes the pipeline distinguishes
- ``Opcode``: mnemonic families recognised in a trace, resolved once at parse time
"""

from __future__ import annotations

import enum
from typing import Optional

# ── Register name ↔ index helpers ────────────────────────────────────────────

_REG_NAMES: list[str] = [
    "zero",
    "at",
    "v0",
    "v1",
    "a0",
    "a1",
    "a2",
    "a3",
    "t0",
    "t1",
    "t2",
    "t3",
    "t4",
    "t5",
    "t6",
    "t7",
    "s0",
    "s1",
    "s2",
    "s3",
    "s4",
    "s5",
    "s6",
    "s7",
    "t8",
    "t9",
    "k0",
    "k1",
    "gp",
    "sp",
    "fp",
    "ra",
]

_REG_BY_NAME: dict[str, int] = {name: idx for idx, name in enumerate(_REG_NAMES)}
_REG_BY_NAME["s8"] = 30
for _i in range(32):
    _REG_BY_NAME[str(_i)] = _i
    _REG_BY_NAME[f"r{_i}"] = _i


class _RegLookup:
    """Callable register lookup with attribute constants.

    Usage::

        reg.SP        # 29
        reg("$sp")    # 29
        reg("$31")    # 31
        reg("t0")     # 8
    """

    ZERO = 0
    AT = 1
    V0 = 2
    V1 = 3
    A0 = 4
    A1 = 5
    A2 = 6
    A3 = 7
    T0 = 8
    T1 = 9
    T2 = 10
    T3 = 11
    T4 = 12
    T5 = 13
    T6 = 14
    T7 = 15
    S0 = 16
    S1 = 17
    S2 = 18
    S3 = 19
    S4 = 20
    S5 = 21
    S6 = 22
    S7 = 23
    T8 = 24
    T9 = 25
    K0 = 26
    K1 = 27
    GP = 28
    SP = 29
    FP = 30
    RA = 31

    def __call__(self, name) -> int:
        if isinstance(name, int):
            return name
        return _REG_BY_NAME[name.strip().lstrip("$").lower()]

    def __repr__(self) -> str:
        return "reg"


reg = _RegLookup()


def reg_name(idx: int) -> str:
    """Return the ABI name for a register index (e.g. ``reg_name(29)`` → ``"sp"``)."""
    return _REG_NAMES[idx]


# ── Instruction kinds and opcodes ────────────────────────────────────────────


class InstructionKind(enum.Enum):
    """Instruction classes tracked by the pipeline and the instruction mix."""

    NOP = "nop"
    RTYPE = "rtype"
    LOAD = "lw"
    STORE = "sw"
    BRANCH = "branch"
    JUMP = "jump"
    SYSCALL = "syscall"


class Opcode(enum.Enum):
    """Mnemonic families understood by the trace parser.

    Each value is the mnemonic prefix that selects it; ``from_mnemonic`` tries
    them in declaration order, so ``jal`` and ``jr`` are matched before ``j``.
    """

    ADD = "add"
    SLL = "sll"
    ORI = "ori"
    LUI = "lui"
    LW = "lw"
    SW = "sw"
    BEQ = "beq"
    JAL = "jal"
    JR = "jr"
    J = "j"
    SYSCALL = "syscall"
    NOP = "nop"

    @property
    def kind(self) -> InstructionKind:
        return _KIND_BY_OPCODE[self]

    @classmethod
    def from_mnemonic(cls, mnemonic: str) -> Optional[Opcode]:
        """Return the family whose prefix matches *mnemonic*, or None."""
        text = mnemonic.lower()
        for op in cls:
            if text.startswith(op.value):
                return op
        return None


_KIND_BY_OPCODE = {
    Opcode.ADD: InstructionKind.RTYPE,
    Opcode.SLL: InstructionKind.RTYPE,
    Opcode.ORI: InstructionKind.RTYPE,
    Opcode.LUI: InstructionKind.RTYPE,
    Opcode.LW: InstructionKind.LOAD,
    Opcode.SW: InstructionKind.STORE,
    Opcode.BEQ: InstructionKind.BRANCH,
    Opcode.JAL: InstructionKind.JUMP,
    Opcode.JR: InstructionKind.JUMP,
    Opcode.J: InstructionKind.JUMP,
    Opcode.SYSCALL: InstructionKind.SYSCALL,
    Opcode.NOP: InstructionKind.NOP,
}
