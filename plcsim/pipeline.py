"""
Five-stage in-order pipeline timing model.

Provides:
- Stage: FETCH, DECODE, ALU, MEM, WRITEBACK.
- Slot variants (Nop, RType, Load, Store, Branch, Jump, Syscall) and BUBBLE.
- PipelineRegisterBank: one slot per stage, shifted once per cycle.
- HazardDetector / Hazards: branch outcome, load-use and store dependency checks.
- Pipeline: the cycle driver and the ``process_*`` insertion family.

Data values are never computed; only timing is modelled.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import ClassVar, List, Optional

from .isa import InstructionKind, reg_name
from .stats import Statistics

log = logging.getLogger(__name__)


class Stage(enum.IntEnum):
    FETCH = 0
    DECODE = 1
    ALU = 2
    MEM = 3
    WRITEBACK = 4


NUM_STAGES = len(Stage)


# ── Pipeline slots ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Slot:
    """Contents of one stage. ``address`` is None for an empty stage."""

    kind: ClassVar[InstructionKind]
    address: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.address is None


@dataclass(frozen=True)
class Nop(Slot):
    kind: ClassVar[InstructionKind] = InstructionKind.NOP


@dataclass(frozen=True)
class RType(Slot):
    kind: ClassVar[InstructionKind] = InstructionKind.RTYPE
    mnemonic: str = ""
    dest: Optional[int] = None
    src1: Optional[int] = None
    src2: Optional[int] = None
    immediate: Optional[int] = None

    def reads(self, register: Optional[int]) -> bool:
        return register is not None and register in (self.src1, self.src2)


@dataclass(frozen=True)
class Load(Slot):
    kind: ClassVar[InstructionKind] = InstructionKind.LOAD
    dest: Optional[int] = None
    base: Optional[int] = None
    data_address: int = 0


@dataclass(frozen=True)
class Store(Slot):
    kind: ClassVar[InstructionKind] = InstructionKind.STORE
    src: Optional[int] = None
    base: Optional[int] = None
    data_address: int = 0


@dataclass(frozen=True)
class Branch(Slot):
    kind: ClassVar[InstructionKind] = InstructionKind.BRANCH
    reg1: Optional[int] = None
    reg2: Optional[int] = None


@dataclass(frozen=True)
class Jump(Slot):
    kind: ClassVar[InstructionKind] = InstructionKind.JUMP
    text: str = ""


@dataclass(frozen=True)
class Syscall(Slot):
    kind: ClassVar[InstructionKind] = InstructionKind.SYSCALL


BUBBLE = Nop()


# ── Register bank ────────────────────────────────────────────────────────────


class PipelineRegisterBank:
    """Fixed sequence of five slots, FETCH first."""

    def __init__(self):
        self._slots: List[Slot] = [BUBBLE] * NUM_STAGES

    def __getitem__(self, stage: Stage) -> Slot:
        return self._slots[stage]

    def __setitem__(self, stage: Stage, slot: Slot) -> None:
        self._slots[stage] = slot

    def __iter__(self):
        return iter(self._slots)

    def __len__(self) -> int:
        return NUM_STAGES

    @property
    def is_empty(self) -> bool:
        return all(slot.is_empty for slot in self._slots)

    def shift(self) -> None:
        """Move every slot one stage toward WRITEBACK and clear FETCH."""
        self._slots = [BUBBLE] + self._slots[:-1]

    def insert(self, slot: Slot) -> None:
        if not self._slots[Stage.FETCH].is_empty:
            raise RuntimeError(
                f"FETCH already holds {self._slots[Stage.FETCH]!r}; advance the pipeline first"
            )
        self._slots[Stage.FETCH] = slot

    def dump(self, cycle: int) -> str:
        cells = []
        for stage, slot in zip(Stage, self._slots):
            addr = 0 if slot.is_empty else slot.address
            cells.append(f"{stage.name}:\t {slot.kind.value}: {addr:#x}")
        return f"(cyc: {cycle}) " + " \t".join(cells)

    def __repr__(self) -> str:
        return f"PipelineRegisterBank({self._slots!r})"


# ── Hazard detection ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Hazards:
    """Outcome of one hazard check. ``branch_taken`` is None when DECODE holds no branch."""

    branch_taken: Optional[bool] = None
    mispredicted: bool = False
    load_use: bool = False
    store_dependency: bool = False

    @property
    def stall_count(self) -> int:
        return int(self.mispredicted) + int(self.load_use) + int(self.store_dependency)


class HazardDetector:
    """Inspects the pre-advance register bank; never modifies it."""

    def __init__(self, predict_taken: bool = False):
        self.predict_taken = predict_taken

    def detect(self, bank: PipelineRegisterBank) -> Hazards:
        branch_taken = self.branch_outcome(bank)
        return Hazards(
            branch_taken=branch_taken,
            mispredicted=branch_taken is not None and branch_taken != self.predict_taken,
            load_use=self.load_use(bank),
            store_dependency=self.store_dependency(bank),
        )

    @staticmethod
    def branch_outcome(bank: PipelineRegisterBank) -> Optional[bool]:
        """Taken iff the instruction behind the branch is not the next sequential one."""
        decode = bank[Stage.DECODE]
        if not isinstance(decode, Branch) or decode.is_empty:
            return None
        return bank[Stage.FETCH].address != decode.address + 4

    @staticmethod
    def load_use(bank: PipelineRegisterBank) -> bool:
        mem, alu = bank[Stage.MEM], bank[Stage.ALU]
        return isinstance(mem, Load) and isinstance(alu, RType) and alu.reads(mem.dest)

    @staticmethod
    def store_dependency(bank: PipelineRegisterBank) -> bool:
        mem, alu = bank[Stage.MEM], bank[Stage.ALU]
        return (
            isinstance(mem, Store)
            and isinstance(alu, RType)
            and mem.base is not None
            and alu.dest == mem.base
        )


# ── Driver ───────────────────────────────────────────────────────────────────


class Pipeline:
    """
    Cycle driver for the register bank.

    Each ``process_*`` call advances one cycle and then inserts the new
    instruction into FETCH. A stall replays cycles that retire and shift
    without inserting anything and without checking hazards again.

    Example::

        pipe = Pipeline(predict_taken=False)
        pipe.process_load(0x400000, dest=2)
        pipe.process_rtype(0x400004, "add", dest=3, src1=2, src2=4)
        stats = pipe.finalize()
    """

    def __init__(
        self,
        predict_taken: bool = False,
        stats: Optional[Statistics] = None,
        trace: bool = False,
    ):
        self.bank = PipelineRegisterBank()
        self.detector = HazardDetector(predict_taken)
        self.stats = stats if stats is not None else Statistics()
        self.trace = trace

    def advance_one_cycle(self) -> None:
        """Retire, check hazards, count the cycle, shift, then replay any stalls."""
        self._retire()

        hazards = self.detector.detect(self.bank)
        if hazards.branch_taken is not None:
            self.stats.branches += 1
            if not hazards.mispredicted:
                self.stats.correct_predictions += 1
        self.stats.stalls_control += int(hazards.mispredicted)
        self.stats.stalls_data += int(hazards.load_use) + int(hazards.store_dependency)

        if hazards.stall_count and log.isEnabledFor(logging.DEBUG):
            self._log_stall(hazards)

        self.stats.cycles += 1
        self.bank.shift()

        for _ in range(hazards.stall_count):
            self._replay()

    def _log_stall(self, hazards: Hazards) -> None:
        causes = []
        if hazards.mispredicted:
            taken = "taken" if hazards.branch_taken else "not taken"
            causes.append(f"branch at {self.bank[Stage.DECODE].address:#x} {taken}, mispredicted")
        mem = self.bank[Stage.MEM]
        if hazards.load_use:
            causes.append(f"load-use on ${reg_name(mem.dest)}")
        if hazards.store_dependency:
            causes.append(f"store base ${reg_name(mem.base)}")
        log.debug("Stall x%d at cycle %d: %s", hazards.stall_count, self.stats.cycles, "; ".join(causes))

    def _replay(self) -> None:
        self._retire()
        self.stats.cycles += 1
        self.bank.shift()

    def _retire(self) -> None:
        slot = self.bank[Stage.WRITEBACK]
        if slot.is_empty:
            return
        self.stats.instructions += 1
        if log.isEnabledFor(logging.DEBUG):
            log.debug(
                "Retired Instruction at %#x, Type %s, at Time %d",
                slot.address,
                slot.kind.value,
                self.stats.cycles,
            )

    def _insert(self, slot: Slot) -> None:
        self.advance_one_cycle()
        self.stats.count_instruction(slot.kind)
        self.bank.insert(slot)
        if self.trace and log.isEnabledFor(logging.DEBUG):
            log.debug("%s", self.bank.dump(self.stats.cycles))

    # ── Instruction insertion ────────────────────────────────────────────────

    def process_rtype(
        self,
        address: int,
        mnemonic: str,
        dest: Optional[int],
        src1: Optional[int] = None,
        src2: Optional[int] = None,
        immediate: Optional[int] = None,
    ) -> None:
        self._insert(RType(address, mnemonic, dest, src1, src2, immediate))

    def process_load(
        self,
        address: int,
        dest: Optional[int],
        base: Optional[int] = None,
        data_address: int = 0,
    ) -> None:
        self._insert(Load(address, dest, base, data_address))

    def process_store(
        self,
        address: int,
        src: Optional[int],
        base: Optional[int] = None,
        data_address: int = 0,
    ) -> None:
        self._insert(Store(address, src, base, data_address))

    def process_branch(
        self, address: int, reg1: Optional[int] = None, reg2: Optional[int] = None
    ) -> None:
        self._insert(Branch(address, reg1, reg2))

    def process_jump(self, address: int, text: str = "") -> None:
        self._insert(Jump(address, text))

    def process_syscall(self, address: int) -> None:
        self._insert(Syscall(address))

    def process_nop(self, address: int) -> None:
        self._insert(Nop(address))

    def dispatch(self, instruction) -> None:
        """Insert a parsed ``trace.Instruction`` through the matching ``process_*`` call."""
        kind = instruction.opcode.kind
        if kind is InstructionKind.RTYPE:
            self.process_rtype(
                instruction.address,
                instruction.mnemonic,
                instruction.dest,
                instruction.src1,
                instruction.src2,
                instruction.immediate,
            )
        elif kind is InstructionKind.LOAD:
            self.process_load(
                instruction.address,
                instruction.dest,
                instruction.base,
                instruction.data_address,
            )
        elif kind is InstructionKind.STORE:
            self.process_store(
                instruction.address,
                instruction.src1,
                instruction.base,
                instruction.data_address,
            )
        elif kind is InstructionKind.BRANCH:
            self.process_branch(instruction.address, instruction.src1, instruction.src2)
        elif kind is InstructionKind.JUMP:
            self.process_jump(instruction.address, instruction.text)
        elif kind is InstructionKind.SYSCALL:
            self.process_syscall(instruction.address)
        else:
            self.process_nop(instruction.address)

    def finalize(self):
        """Drain every in-flight instruction and return the ``Stats`` read-out."""
        while not self.bank.is_empty:
            self.advance_one_cycle()
        return self.stats.snapshot()

    def __repr__(self) -> str:
        return f"Pipeline(cycle={self.stats.cycles}, bank={self.bank!r})"
