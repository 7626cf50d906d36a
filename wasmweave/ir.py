"""The instruction tree: locals, instruction sequences and instructions."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Iterator

from .ids import Id
from .ops import (
    AtomicOp,
    AtomicWidth,
    BinaryOp,
    LaneOp,
    LoadKind,
    LoadSimdKind,
    MemArg,
    StoreKind,
    UnaryOp,
    Value,
)

_DEFAULT_INSTR_LOC_ID = 0xFFFF_FFFF
_U32_LIMIT = 1 << 32


@dataclass
class Local:
    """A local variable or parameter of a function."""

    id: Id
    ty: Any
    name: str | None = None


@dataclass(frozen=True)
class InstrSeqType:
    """The type of an instruction sequence.

    Simple sequences take no parameters and produce at most one ``result``;
    multi-value sequences refer to a function type through ``type_id``.
    """

    result: Any = None
    type_id: Id | None = None

    def __post_init__(self) -> None:
        if self.result is not None and self.type_id is not None:
            raise ValueError("a sequence type is either simple or multi-value, not both")

    @classmethod
    def simple(cls, ty: Any) -> InstrSeqType:
        """A sequence producing ``ty``, or nothing when ``ty`` is None."""
        return cls(result=ty)

    @classmethod
    def multi_value(cls, type_id: Id) -> InstrSeqType:
        """A sequence whose parameters and results are those of ``type_id``."""
        return cls(type_id=type_id)

    def is_multi_value(self) -> bool:
        return self.type_id is not None


class InstrLocId:
    """Symbolic source location of an instruction, usually a bytecode offset."""

    __slots__ = ("_value",)

    def __init__(self, data: int) -> None:
        if not 0 <= data < _U32_LIMIT:
            raise ValueError(f"location {data} does not fit in 32 bits")
        if data == _DEFAULT_INSTR_LOC_ID:
            raise ValueError("0xffffffff is reserved for the default location")
        self._value = data

    @classmethod
    def default(cls) -> InstrLocId:
        """The location carried by instructions that have none."""
        loc = cls.__new__(cls)
        loc._value = _DEFAULT_INSTR_LOC_ID
        return loc

    def is_default(self) -> bool:
        return self._value == _DEFAULT_INSTR_LOC_ID

    def data(self) -> int:
        """The location's data; raises ValueError for the default location."""
        if self.is_default():
            raise ValueError("the default location carries no data")
        return self._value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InstrLocId):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash(self._value)

    def __repr__(self) -> str:
        if self.is_default():
            return "InstrLocId.default()"
        return f"InstrLocId({self._value})"


class InstrSeq:
    """A typed sequence of instructions, each paired with its location."""

    def __init__(self, id: Id, ty: InstrSeqType) -> None:
        self.id = id
        self.ty = ty
        self.instrs: list[tuple[Instr, InstrLocId]] = []

    def __iter__(self) -> Iterator[tuple[Instr, InstrLocId]]:
        return iter(self.instrs)

    def __len__(self) -> int:
        return len(self.instrs)

    def __repr__(self) -> str:
        return f"InstrSeq(id={self.id}, ty={self.ty!r}, instrs={len(self.instrs)})"


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _skip(**kwargs: Any) -> Any:
    """A field that traversals do not report to visitors."""
    return field(metadata={"skip_visit": True}, **kwargs)


class Instr:
    """Base class of every instruction.

    ``snake_name`` is the instruction's name in snake case, as used by the
    visitor methods that handle it.
    """

    snake_name: ClassVar[str] = "instr"
    _ends_flow: ClassVar[bool] = False

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.snake_name = _snake(cls.__name__)

    def following_instructions_are_unreachable(self) -> bool:
        """Whether the rest of the enclosing sequence can never execute."""
        return self._ends_flow

    def _visited_fields(self) -> Iterator[tuple[str, Any]]:
        for f in fields(self):
            if not f.metadata.get("skip_visit"):
                yield f.name, getattr(self, f.name)


def _check_op(op: Any, family: type) -> None:
    if isinstance(op, LaneOp):
        if not isinstance(op.op, family):
            raise TypeError(f"{op.op!r} is not a {family.__name__}")
    elif not isinstance(op, family):
        raise TypeError(f"{op!r} is not a {family.__name__}")
    elif "_LANE" in op.name:
        raise ValueError(f"{op.name} needs a lane index; wrap it in LaneOp")


@dataclass
class Block(Instr):
    """``block ... end``"""

    seq: Id


@dataclass
class Loop(Instr):
    """``loop ... end``"""

    seq: Id


@dataclass
class Call(Instr):
    """``call``"""

    func: Id


@dataclass
class CallIndirect(Instr):
    """``call_indirect``"""

    ty: Id
    table: Id


@dataclass
class LocalGet(Instr):
    """``local.get``"""

    local: Id


@dataclass
class LocalSet(Instr):
    """``local.set``"""

    local: Id


@dataclass
class LocalTee(Instr):
    """``local.tee``"""

    local: Id


@dataclass
class GlobalGet(Instr):
    """``global.get``"""

    global_: Id


@dataclass
class GlobalSet(Instr):
    """``global.set``"""

    global_: Id


@dataclass
class Const(Instr):
    """``*.const``"""

    value: Value


@dataclass
class Binop(Instr):
    """An operation on two operands."""

    op: BinaryOp | LaneOp = _skip()

    def __post_init__(self) -> None:
        _check_op(self.op, BinaryOp)


@dataclass
class Unop(Instr):
    """An operation on one operand."""

    op: UnaryOp | LaneOp = _skip()

    def __post_init__(self) -> None:
        _check_op(self.op, UnaryOp)


@dataclass
class Select(Instr):
    """``select``, optionally with an explicit result type."""

    ty: Any = _skip(default=None)


@dataclass
class Unreachable(Instr):
    """``unreachable``"""

    _ends_flow = True


@dataclass
class Br(Instr):
    """``br``"""

    block: Id = _skip()

    _ends_flow = True


@dataclass
class BrIf(Instr):
    """``br_if``"""

    block: Id = _skip()


@dataclass
class IfElse(Instr):
    """``if <consequent> else <alternative> end``"""

    consequent: Id
    alternative: Id


@dataclass
class BrTable(Instr):
    """``br_table``"""

    blocks: tuple[Id, ...] = _skip()
    default: Id = _skip()

    _ends_flow = True

    def __post_init__(self) -> None:
        self.blocks = tuple(self.blocks)


@dataclass
class Drop(Instr):
    """``drop``"""


@dataclass
class Return(Instr):
    """``return``"""

    _ends_flow = True


@dataclass
class MemorySize(Instr):
    """``memory.size``"""

    memory: Id


@dataclass
class MemoryGrow(Instr):
    """``memory.grow``"""

    memory: Id


@dataclass
class MemoryInit(Instr):
    """``memory.init``"""

    memory: Id
    data: Id


@dataclass
class DataDrop(Instr):
    """``data.drop``"""

    data: Id


@dataclass
class MemoryCopy(Instr):
    """``memory.copy``"""

    src: Id
    dst: Id


@dataclass
class MemoryFill(Instr):
    """``memory.fill``"""

    memory: Id


@dataclass
class Load(Instr):
    """``*.load``"""

    memory: Id
    kind: LoadKind = _skip()
    arg: MemArg = _skip()


@dataclass
class Store(Instr):
    """``*.store``"""

    memory: Id
    kind: StoreKind = _skip()
    arg: MemArg = _skip()


@dataclass
class AtomicRmw(Instr):
    """An atomic read-modify-write."""

    memory: Id
    op: AtomicOp = _skip()
    width: AtomicWidth = _skip()
    arg: MemArg = _skip()


@dataclass
class Cmpxchg(Instr):
    """An atomic compare-and-exchange."""

    memory: Id
    width: AtomicWidth = _skip()
    arg: MemArg = _skip()


@dataclass
class AtomicNotify(Instr):
    """``atomic.notify``"""

    memory: Id
    arg: MemArg = _skip()


@dataclass
class AtomicWait(Instr):
    """``*.atomic.wait``"""

    memory: Id
    arg: MemArg = _skip()
    sixty_four: bool = _skip(default=False)


@dataclass
class AtomicFence(Instr):
    """``atomic.fence``"""


@dataclass
class TableGet(Instr):
    """``table.get``"""

    table: Id


@dataclass
class TableSet(Instr):
    """``table.set``"""

    table: Id


@dataclass
class TableGrow(Instr):
    """``table.grow``"""

    table: Id


@dataclass
class TableSize(Instr):
    """``table.size``"""

    table: Id


@dataclass
class TableFill(Instr):
    """``table.fill``"""

    table: Id


@dataclass
class RefNull(Instr):
    """``ref.null``"""

    ty: Any = _skip()


@dataclass
class RefIsNull(Instr):
    """``ref.is_null``"""

    ty: Any = _skip()


@dataclass
class RefFunc(Instr):
    """``ref.func``"""

    func: Id


@dataclass
class V128Bitselect(Instr):
    """``v128.bitselect``"""


@dataclass
class V128Swizzle(Instr):
    """``v128.swizzle``"""


@dataclass
class V128Shuffle(Instr):
    """``v128.shuffle`` with its sixteen lane indices."""

    indices: bytes = _skip()

    def __post_init__(self) -> None:
        self.indices = bytes(self.indices)
        if len(self.indices) != 16:
            raise ValueError(f"shuffle needs 16 lane indices, got {len(self.indices)}")


@dataclass
class LoadSimd(Instr):
    """A vector load that splats or widens."""

    memory: Id
    kind: LoadSimdKind = _skip()
    arg: MemArg = _skip()


@dataclass
class TableInit(Instr):
    """``table.init``"""

    table: Id
    elem: Id


@dataclass
class ElemDrop(Instr):
    """``elem.drop``"""

    elem: Id


@dataclass
class TableCopy(Instr):
    """``table.copy``"""

    src: Id
    dst: Id