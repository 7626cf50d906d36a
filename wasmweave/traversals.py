"""Depth-first traversals of the instruction tree of one function."""

from __future__ import annotations

from itertools import islice
from typing import Any, Callable, Mapping

from .ids import Id
from .ir import Block, IfElse, Instr, InstrLocId, InstrSeq, InstrSeqType, Loop
from .ops import Value


def _call(visitor: Any, name: str, arg: Any) -> Any:
    handler: Callable[[Any], Any] | None = getattr(visitor, name, None)
    if handler is None:
        return None
    return handler(arg)


class _TraversalState:
    """Tracks the sequences currently open and the last instruction's location."""

    def _open_sequences(self) -> list[InstrSeq]:
        return vars(self).setdefault("_traversal_open_sequences", [])

    def _enter(self, seq: InstrSeq) -> None:
        self._open_sequences().append(seq)

    def _leave(self, seq: InstrSeq) -> None:
        open_sequences = self._open_sequences()
        if open_sequences and open_sequences[-1] is seq:
            open_sequences.pop()

    def _locate(self, loc: InstrLocId) -> None:
        vars(self)["_traversal_location"] = loc

    @property
    def depth(self) -> int:
        """How many sequences are open at this point of the traversal."""
        return len(self._open_sequences())

    @property
    def current_location(self) -> InstrLocId | None:
        """Location of the instruction visited last, or None before any."""
        return vars(self).get("_traversal_location")


class Visitor(_TraversalState):
    """Receives callbacks from :func:`dfs_in_order`.

    Besides the methods below, a visitor may define any of these, which are
    looked up by name and called when present:

    * ``visit_<snake_name>(instr)`` for each instruction kind, e.g.
      ``visit_const`` or ``visit_if_else``;
    * ``visit_<kind>_id(id)`` for each id an instruction refers to, where
      ``kind`` is the id's kind, e.g. ``visit_function_id``; ids without such
      a handler go to ``visit_id(id)`` when it is defined;
    * ``visit_value(value)`` for constant values.

    The base methods keep :attr:`depth` and :attr:`current_location`
    up to date; overrides that want them call ``super()``.
    """

    def start_instr_seq(self, seq: InstrSeq) -> None:
        """Called when the traversal enters a sequence."""
        self._enter(seq)

    def end_instr_seq(self, seq: InstrSeq) -> None:
        """Called when a sequence and everything nested in it is done."""
        self._leave(seq)

    def visit_instr(self, instr: Instr, loc: InstrLocId) -> None:
        """Called for every instruction, before its specific handler."""
        self._locate(loc)

    def visit_type_id(self, type_id: Id) -> None:
        """Called with the type of every multi-value sequence.

        The default passes the id on to ``visit_id`` when that is defined.
        """
        _call(self, "visit_id", type_id)


class VisitorMut(_TraversalState):
    """Receives callbacks from :func:`dfs_pre_order_mut`.

    The optional handlers are those of :class:`Visitor` with a ``_mut``
    suffix. ``visit_<kind>_id_mut``, ``visit_id_mut``, ``visit_value_mut``
    and :meth:`visit_type_id_mut` may return a replacement, which is stored
    in place of the visited item; returning None leaves it unchanged.
    Instructions and sequences themselves are changed in place.
    """

    def start_instr_seq_mut(self, seq: InstrSeq) -> None:
        """Called when the traversal enters a sequence."""
        self._enter(seq)

    def end_instr_seq_mut(self, seq: InstrSeq) -> None:
        """Called after every instruction of a sequence was visited."""
        self._leave(seq)

    def visit_instr_mut(self, instr: Instr, loc: InstrLocId) -> None:
        """Called for every instruction, before its specific handler."""
        self._locate(loc)

    def visit_type_id_mut(self, type_id: Id) -> Id | None:
        """Called with the type of every multi-value sequence.

        The default returns what ``visit_id_mut`` returns when that is
        defined, and None otherwise.
        """
        return _call(self, "visit_id_mut", type_id)


def _visit_resources(visitor: Any, instr: Instr, suffix: str) -> None:
    _call(visitor, f"visit_{instr.snake_name}{suffix}", instr)
    for name, value in instr._visited_fields():
        if isinstance(value, Id):
            specific = f"visit_{value.kind}_id{suffix}"
            if getattr(visitor, specific, None) is not None:
                replacement = _call(visitor, specific, value)
            else:
                replacement = _call(visitor, f"visit_id{suffix}", value)
        elif isinstance(value, Value):
            replacement = _call(visitor, f"visit_value{suffix}", value)
        else:
            continue
        if suffix and replacement is not None:
            setattr(instr, name, replacement)


def _nested(instr: Instr) -> list[Id]:
    """Sequences an instruction opens, in the order they are visited."""
    if isinstance(instr, (Block, Loop)):
        return [instr.seq]
    if isinstance(instr, IfElse):
        return [instr.consequent, instr.alternative]
    return []


def dfs_in_order(visitor: Visitor, blocks: Mapping[Id, InstrSeq], start: Id) -> None:
    """Visit the sequences reachable from ``start`` depth-first, in order.

    A nested sequence is visited completely at the point where the
    instruction that opens it appears. ``blocks`` maps sequence ids to
    sequences; a missing sequence raises KeyError. The walk is iterative, so
    deep nesting does not exhaust the call stack.
    """
    stack: list[tuple[Id, int]] = [(start, 0)]
    while stack:
        seq_id, resume = stack.pop()
        seq = blocks[seq_id]
        if resume == 0:
            visitor.start_instr_seq(seq)
            if seq.ty.is_multi_value():
                visitor.visit_type_id(seq.ty.type_id)

        for position, (instr, loc) in islice(enumerate(seq.instrs), resume, None):
            visitor.visit_instr(instr, loc)
            _visit_resources(visitor, instr, "")
            children = _nested(instr)
            if children:
                stack.append((seq_id, position + 1))
                stack.extend((child, 0) for child in reversed(children))
                break
        else:
            visitor.end_instr_seq(seq)


def dfs_pre_order_mut(
    visitor: VisitorMut, blocks: Mapping[Id, InstrSeq], start: Id
) -> None:
    """Visit and possibly change the sequences reachable from ``start``.

    Every instruction of a sequence is visited before any sequence nested in
    it. ``blocks`` maps sequence ids to sequences; a missing sequence raises
    KeyError.
    """
    stack: list[Id] = [start]
    while stack:
        seq = blocks[stack.pop()]
        visitor.start_instr_seq_mut(seq)
        if seq.ty.is_multi_value():
            replacement = visitor.visit_type_id_mut(seq.ty.type_id)
            if replacement is not None:
                seq.ty = InstrSeqType.multi_value(replacement)

        for instr, loc in seq.instrs:
            visitor.visit_instr_mut(instr, loc)
            _visit_resources(visitor, instr, "_mut")
            stack.extend(reversed(_nested(instr)))

        visitor.end_instr_seq_mut(seq)