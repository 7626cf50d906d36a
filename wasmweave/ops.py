"""Operators, memory access kinds and constant values of the instruction IR."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

_INT_CMP = "EQ NE LT_S LT_U GT_S GT_U LE_S LE_U GE_S GE_U"
_FLOAT_CMP = "EQ NE LT GT LE GE"


def _names(prefixes: str, suffixes: str) -> list[str]:
    return [f"{p}_{s}" for p in prefixes.split() for s in suffixes.split()]


_BINARY_NAMES = (
    _names("I32 I64", _INT_CMP)
    + _names("F32 F64", _FLOAT_CMP)
    + _names(
        "I32 I64",
        "ADD SUB MUL DIV_S DIV_U REM_S REM_U AND OR XOR SHL SHR_S SHR_U ROTL ROTR",
    )
    + _names("F32 F64", "ADD SUB MUL DIV MIN MAX COPYSIGN")
    + _names("I8X16 I16X8 I32X4 I64X2 F32X4 F64X2", "REPLACE_LANE")
    + _names("I8X16 I16X8 I32X4", _INT_CMP)
    + _names("F32X4 F64X2", _FLOAT_CMP)
    + "V128_AND V128_OR V128_XOR V128_AND_NOT".split()
    + _names(
        "I8X16",
        "SHL SHR_S SHR_U ADD ADD_SATURATE_S ADD_SATURATE_U SUB SUB_SATURATE_S SUB_SATURATE_U",
    )
    + _names(
        "I16X8",
        "SHL SHR_S SHR_U ADD ADD_SATURATE_S ADD_SATURATE_U SUB SUB_SATURATE_S "
        "SUB_SATURATE_U MUL",
    )
    + _names("I32X4 I64X2", "SHL SHR_S SHR_U ADD SUB MUL")
    + _names("F32X4 F64X2", "ADD SUB MUL DIV MIN MAX")
    + [
        "I8X16_NARROW_I16X8_S",
        "I8X16_NARROW_I16X8_U",
        "I16X8_NARROW_I32X4_S",
        "I16X8_NARROW_I32X4_U",
        "I8X16_ROUNDING_AVERAGE_U",
        "I16X8_ROUNDING_AVERAGE_U",
    ]
    + _names("I8X16 I16X8 I32X4", "MIN_S MIN_U MAX_S MAX_U")
)

_UNARY_NAMES = (
    _names("I32 I64", "EQZ CLZ CTZ POPCNT")
    + _names("F32 F64", "ABS NEG CEIL FLOOR TRUNC NEAREST SQRT")
    + """
    I32_WRAP_I64 I32_TRUNC_S_F32 I32_TRUNC_U_F32 I32_TRUNC_S_F64 I32_TRUNC_U_F64
    I64_EXTEND_S_I32 I64_EXTEND_U_I32 I64_TRUNC_S_F32 I64_TRUNC_U_F32
    I64_TRUNC_S_F64 I64_TRUNC_U_F64
    F32_CONVERT_S_I32 F32_CONVERT_U_I32 F32_CONVERT_S_I64 F32_CONVERT_U_I64
    F32_DEMOTE_F64 F64_CONVERT_S_I32 F64_CONVERT_U_I32 F64_CONVERT_S_I64
    F64_CONVERT_U_I64 F64_PROMOTE_F32
    I32_REINTERPRET_F32 I64_REINTERPRET_F64 F32_REINTERPRET_I32 F64_REINTERPRET_I64
    I32_EXTEND8_S I32_EXTEND16_S I64_EXTEND8_S I64_EXTEND16_S I64_EXTEND32_S
    I8X16_SPLAT I8X16_EXTRACT_LANE_S I8X16_EXTRACT_LANE_U
    I16X8_SPLAT I16X8_EXTRACT_LANE_S I16X8_EXTRACT_LANE_U
    I32X4_SPLAT I32X4_EXTRACT_LANE I64X2_SPLAT I64X2_EXTRACT_LANE
    F32X4_SPLAT F32X4_EXTRACT_LANE F64X2_SPLAT F64X2_EXTRACT_LANE
    V128_NOT
    """.split()
    + _names("I8X16 I16X8 I32X4", "ABS NEG ANY_TRUE ALL_TRUE")
    + ["I64X2_NEG"]
    + _names("F32X4 F64X2", "ABS NEG SQRT")
    + """
    I32X4_TRUNC_SAT_F32X4_S I32X4_TRUNC_SAT_F32X4_U
    F32X4_CONVERT_I32X4_S F32X4_CONVERT_I32X4_U
    I32_TRUNC_S_SAT_F32 I32_TRUNC_U_SAT_F32 I32_TRUNC_S_SAT_F64 I32_TRUNC_U_SAT_F64
    I64_TRUNC_S_SAT_F32 I64_TRUNC_U_SAT_F32 I64_TRUNC_S_SAT_F64 I64_TRUNC_U_SAT_F64
    I16X8_WIDEN_LOW_I8X16_S I16X8_WIDEN_LOW_I8X16_U
    I16X8_WIDEN_HIGH_I8X16_S I16X8_WIDEN_HIGH_I8X16_U
    I32X4_WIDEN_LOW_I16X8_S I32X4_WIDEN_LOW_I16X8_U
    I32X4_WIDEN_HIGH_I16X8_S I32X4_WIDEN_HIGH_I16X8_U
    """.split()
)

BinaryOp = Enum("BinaryOp", _BINARY_NAMES, module=__name__, qualname="BinaryOp")
BinaryOp.__doc__ = "Instructions that take two operands."

UnaryOp = Enum("UnaryOp", _UNARY_NAMES, module=__name__, qualname="UnaryOp")
UnaryOp.__doc__ = "Instructions that take one operand."

_LANE_COUNTS = {
    "I8X16": 16,
    "I16X8": 8,
    "I32X4": 4,
    "I64X2": 2,
    "F32X4": 4,
    "F64X2": 2,
}


def _lane_count(op: Enum) -> int | None:
    if "_REPLACE_LANE" not in op.name and "_EXTRACT_LANE" not in op.name:
        return None
    return _LANE_COUNTS[op.name.split("_", 1)[0]]


@dataclass(frozen=True)
class LaneOp:
    """A lane-replace or lane-extract operator together with its lane index."""

    op: BinaryOp | UnaryOp
    idx: int

    def __post_init__(self) -> None:
        if not isinstance(self.op, (BinaryOp, UnaryOp)):
            raise TypeError(f"not an operator: {self.op!r}")
        lanes = _lane_count(self.op)
        if lanes is None:
            raise ValueError(f"{self.op.name} does not take a lane index")
        if not 0 <= self.idx < lanes:
            raise ValueError(f"lane index {self.idx} out of range for {self.op.name}")

    @property
    def lanes(self) -> int:
        """Number of lanes in the vector shape of this operator."""
        return _LANE_COUNTS[self.op.name.split("_", 1)[0]]


class MemoryShape(Enum):
    """The value type and width of a plain memory access."""

    I32 = ("i32", 4)
    I64 = ("i64", 8)
    F32 = ("f32", 4)
    F64 = ("f64", 8)
    V128 = ("v128", 16)
    I32_8 = ("i32_8", 1)
    I32_16 = ("i32_16", 2)
    I64_8 = ("i64_8", 1)
    I64_16 = ("i64_16", 2)
    I64_32 = ("i64_32", 4)

    def width(self) -> int:
        """Number of bytes accessed."""
        return self.value[1]


_FULL_INTS = frozenset({MemoryShape.I32, MemoryShape.I64})
_NON_ATOMIC = frozenset({MemoryShape.F32, MemoryShape.F64, MemoryShape.V128})


class ExtendedLoad(Enum):
    """How a narrow load widens its value."""

    SIGN_EXTEND = "sign_extend"
    ZERO_EXTEND = "zero_extend"
    ZERO_EXTEND_ATOMIC = "zero_extend_atomic"

    def is_atomic(self) -> bool:
        """Whether this is an atomic extended load."""
        return self is ExtendedLoad.ZERO_EXTEND_ATOMIC


@dataclass(frozen=True)
class LoadKind:
    """The kind of a memory load.

    Narrow loads carry an ``extend`` mode, which also decides atomicity;
    full-width integer loads carry an ``atomic`` flag; float and vector loads
    carry neither.
    """

    shape: MemoryShape
    atomic: bool = False
    extend: ExtendedLoad | None = None

    def __post_init__(self) -> None:
        if self.shape in _FULL_INTS or self.shape in _NON_ATOMIC:
            if self.extend is not None:
                raise ValueError(f"{self.shape.name} loads take no extension mode")
            if self.shape in _NON_ATOMIC and self.atomic:
                raise ValueError(f"{self.shape.name} loads cannot be atomic")
        else:
            if self.extend is None:
                raise ValueError(f"{self.shape.name} loads need an extension mode")
            if self.atomic:
                raise ValueError("atomicity of narrow loads comes from the extension mode")

    def width(self) -> int:
        """Number of bytes loaded."""
        return self.shape.width()

    def is_atomic(self) -> bool:
        """Whether this is an atomic load."""
        if self.extend is not None:
            return self.extend.is_atomic()
        return self.atomic


@dataclass(frozen=True)
class StoreKind:
    """The kind of a memory store."""

    shape: MemoryShape
    atomic: bool = False

    def __post_init__(self) -> None:
        if self.shape in _NON_ATOMIC and self.atomic:
            raise ValueError(f"{self.shape.name} stores cannot be atomic")

    def width(self) -> int:
        """Number of bytes stored."""
        return self.shape.width()

    def is_atomic(self) -> bool:
        """Whether this is an atomic store."""
        return self.atomic


class LoadSimdKind(Enum):
    """Vector loads that splat or widen their operand."""

    SPLAT8 = "splat8"
    SPLAT16 = "splat16"
    SPLAT32 = "splat32"
    SPLAT64 = "splat64"
    I16X8_LOAD8X8_S = "i16x8_load8x8_s"
    I16X8_LOAD8X8_U = "i16x8_load8x8_u"
    I32X4_LOAD16X4_S = "i32x4_load16x4_s"
    I32X4_LOAD16X4_U = "i32x4_load16x4_u"
    I64X2_LOAD32X2_S = "i64x2_load32x2_s"
    I64X2_LOAD32X2_U = "i64x2_load32x2_u"


_U32_LIMIT = 1 << 32


@dataclass(frozen=True)
class MemArg:
    """Alignment and constant offset of a memory access."""

    align: int
    offset: int

    def __post_init__(self) -> None:
        for name in ("align", "offset"):
            value = getattr(self, name)
            if not 0 <= value < _U32_LIMIT:
                raise ValueError(f"{name} {value} does not fit in 32 bits")


class AtomicOp(Enum):
    """Atomic read-modify-write operations."""

    ADD = "add"
    SUB = "sub"
    AND = "and"
    OR = "or"
    XOR = "xor"
    XCHG = "xchg"


class AtomicWidth(Enum):
    """Operand widths of atomic read-modify-write operations."""

    I32 = ("i32", 4)
    I32_8 = ("i32_8", 1)
    I32_16 = ("i32_16", 2)
    I64 = ("i64", 8)
    I64_8 = ("i64_8", 1)
    I64_16 = ("i64_16", 2)
    I64_32 = ("i64_32", 4)

    def bytes(self) -> int:
        """Size of the operation in bytes."""
        return self.value[1]


class ValueKind(Enum):
    """Types of constant values."""

    I32 = "i32"
    I64 = "i64"
    F32 = "f32"
    F64 = "f64"
    V128 = "v128"


_INT_RANGES = {
    ValueKind.I32: (-(1 << 31), 1 << 31),
    ValueKind.I64: (-(1 << 63), 1 << 63),
    ValueKind.V128: (0, 1 << 128),
}


def _to_f32(x: float) -> float:
    return struct.unpack("<f", struct.pack("<f", x))[0]


def _sleb128(n: int) -> bytes:
    out = bytearray()
    while True:
        byte = n & 0x7F
        n >>= 7
        if (n == 0 and not byte & 0x40) or (n == -1 and byte & 0x40):
            out.append(byte)
            return bytes(out)
        out.append(byte | 0x80)


def _format_float(x: float, single: bool) -> str:
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "inf" if x > 0 else "-inf"
    if single:
        text = next(
            candidate
            for candidate in (format(x, f".{p}g") for p in range(1, 10))
            if _to_f32(float(candidate)) == x
        )
    else:
        text = repr(x)
    plain = format(Decimal(text), "f")
    if "." in plain:
        plain = plain.rstrip("0").rstrip(".")
    return plain


@dataclass(frozen=True)
class Value:
    """A constant value: an integer, a float or a 128-bit vector."""

    kind: ValueKind
    value: int | float

    def __post_init__(self) -> None:
        if self.kind in _INT_RANGES:
            if isinstance(self.value, bool) or not isinstance(self.value, int):
                raise TypeError(f"{self.kind.value} constant must be an int")
            low, high = _INT_RANGES[self.kind]
            if not low <= self.value < high:
                raise ValueError(f"{self.value} does not fit in {self.kind.value}")
            return
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise TypeError(f"{self.kind.value} constant must be a number")
        number = float(self.value)
        if self.kind is ValueKind.F32:
            try:
                number = _to_f32(number)
            except OverflowError:
                raise ValueError(f"{self.value} does not fit in f32") from None
        object.__setattr__(self, "value", number)

    @classmethod
    def i32(cls, n: int) -> Value:
        return cls(ValueKind.I32, n)

    @classmethod
    def i64(cls, n: int) -> Value:
        return cls(ValueKind.I64, n)

    @classmethod
    def f32(cls, n: float) -> Value:
        return cls(ValueKind.F32, n)

    @classmethod
    def f64(cls, n: float) -> Value:
        return cls(ValueKind.F64, n)

    @classmethod
    def v128(cls, n: int) -> Value:
        return cls(ValueKind.V128, n)

    def encode(self) -> bytes:
        """The binary encoding of the matching ``*.const`` instruction."""
        if self.kind is ValueKind.I32:
            return b"\x41" + _sleb128(self.value)
        if self.kind is ValueKind.I64:
            return b"\x42" + _sleb128(self.value)
        if self.kind is ValueKind.F32:
            return b"\x43" + struct.pack("<f", self.value)
        if self.kind is ValueKind.F64:
            return b"\x44" + struct.pack("<d", self.value)
        return b"\xfd\x0c" + self.value.to_bytes(16, "little")

    def __str__(self) -> str:
        if self.kind is ValueKind.F32:
            return _format_float(self.value, single=True)
        if self.kind is ValueKind.F64:
            return _format_float(self.value, single=False)
        return str(self.value)