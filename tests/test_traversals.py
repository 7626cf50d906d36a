import pytest

from wasmweave.ids import Id
from wasmweave.ir import (
    Block,
    Call,
    Const,
    Drop,
    IfElse,
    InstrLocId,
    InstrSeq,
    InstrSeqType,
    LocalGet,
)
from wasmweave.ops import Value
from wasmweave.traversals import (
    Visitor,
    VisitorMut,
    dfs_in_order,
    dfs_pre_order_mut,
)


def _seq_id(index):
    return Id("instr_seq", index)


class RecordingVisitor(Visitor, VisitorMut):
    def __init__(self):
        self.visits = []

    def start_instr_seq(self, seq):
        self.visits.append("start")

    def end_instr_seq(self, seq):
        self.visits.append("end")

    def visit_const(self, c):
        self.visits.append(str(c.value))

    def visit_drop(self, d):
        self.visits.append("drop")

    def visit_block(self, b):
        self.visits.append("block")

    def visit_if_else(self, i):
        self.visits.append("if-else")

    def start_instr_seq_mut(self, seq):
        self.visits.append("start")

    def end_instr_seq_mut(self, seq):
        self.visits.append("end")

    def visit_const_mut(self, c):
        self.visits.append(str(c.value))
        c.value = Value.i32(c.value.value + 1)

    def visit_drop_mut(self, d):
        self.visits.append("drop")

    def visit_block_mut(self, b):
        self.visits.append("block")

    def visit_if_else_mut(self, i):
        self.visits.append("if-else")


def _seq(index, *instrs, ty=None):
    seq = InstrSeq(_seq_id(index), ty or InstrSeqType.simple(None))
    seq.instrs.extend((instr, InstrLocId.default()) for instr in instrs)
    return seq


def make_test_func():
    entry = _seq(
        0,
        Const(Value.i32(1)),
        Drop(),
        Block(_seq_id(1)),
        Const(Value.i32(6)),
        Drop(),
    )
    block = _seq(
        1,
        Const(Value.i32(2)),
        Drop(),
        IfElse(_seq_id(2), _seq_id(3)),
        Const(Value.i32(5)),
        Drop(),
    )
    then = _seq(2, Const(Value.i32(3)), Drop())
    else_ = _seq(3, Const(Value.i32(4)), Drop())
    return {seq.id: seq for seq in (entry, block, then, else_)}


def test_dfs_in_order():
    blocks = make_test_func()
    visitor = RecordingVisitor()
    dfs_in_order(visitor, blocks, _seq_id(0))
    expected = [
        "start", "1", "drop", "block", "start", "2", "drop", "if-else", "start", "3", "drop",
        "end", "start", "4", "drop", "end", "5", "drop", "end", "6", "drop", "end",
    ]
    assert visitor.visits == expected


def test_dfs_pre_order_mut():
    blocks = make_test_func()
    visitor = RecordingVisitor()
    dfs_pre_order_mut(visitor, blocks, _seq_id(0))

    expected = []
    expected.extend(["start", "1", "drop", "block", "6", "drop", "end"])
    expected.extend(["start", "2", "drop", "if-else", "5", "drop", "end"])
    expected.extend(["start", "3", "drop", "end"])
    expected.extend(["start", "4", "drop", "end"])
    assert visitor.visits == expected

    visitor.visits.clear()
    dfs_in_order(visitor, blocks, _seq_id(0))
    expected = [
        "start", "2", "drop", "block", "start", "3", "drop", "if-else", "start", "4", "drop",
        "end", "start", "5", "drop", "end", "6", "drop", "end", "7", "drop", "end",
    ]
    assert visitor.visits == expected


def test_empty_sequence_is_started_and_ended():
    blocks = {_seq_id(0): _seq(0)}
    visitor = RecordingVisitor()
    dfs_in_order(visitor, blocks, _seq_id(0))
    assert visitor.visits == ["start", "end"]


def test_visit_instr_receives_every_instruction_with_location():
    blocks = make_test_func()
    seen = []

    class Collector(Visitor):
        def visit_instr(self, instr, loc):
            seen.append((type(instr).__name__, loc.is_default()))

    dfs_in_order(Collector(), blocks, _seq_id(0))
    assert len(seen) == sum(len(seq) for seq in blocks.values())
    assert all(is_default for _, is_default in seen)


def test_ids_are_dispatched_by_kind():
    func_id = Id("function", 3)
    local_id = Id("local", 1)
    blocks = {_seq_id(0): _seq(0, Call(func_id), LocalGet(local_id))}
    funcs, locals_ = [], []

    class IdCollector(Visitor):
        def visit_function_id(self, id):
            funcs.append(id)

        def visit_local_id(self, id):
            locals_.append(id)

    dfs_in_order(IdCollector(), blocks, _seq_id(0))
    assert funcs == [func_id]
    assert locals_ == [local_id]


def test_multi_value_sequence_reports_type_id():
    type_id = Id("type", 0)
    blocks = {_seq_id(0): _seq(0, ty=InstrSeqType.multi_value(type_id))}
    types = []

    class TypeCollector(Visitor):
        def visit_type_id(self, id):
            types.append(id)

    dfs_in_order(TypeCollector(), blocks, _seq_id(0))
    assert types == [type_id]


def test_mutable_visitor_can_replace_ids():
    old, new = Id("local", 0), Id("local", 9)
    instr = LocalGet(old)
    blocks = {_seq_id(0): _seq(0, instr)}

    class Renamer(VisitorMut):
        def visit_local_id_mut(self, id):
            return new if id == old else None

    dfs_pre_order_mut(Renamer(), blocks, _seq_id(0))
    assert instr.local == new


def test_mutable_visitor_can_replace_sequence_type():
    old, new = Id("type", 0), Id("type", 5)
    blocks = {_seq_id(0): _seq(0, ty=InstrSeqType.multi_value(old))}

    class Retyper(VisitorMut):
        def visit_type_id_mut(self, id):
            return new

    dfs_pre_order_mut(Retyper(), blocks, _seq_id(0))
    assert blocks[_seq_id(0)].ty == InstrSeqType.multi_value(new)


def test_missing_sequence_raises_key_error():
    blocks = {_seq_id(0): _seq(0, Block(_seq_id(7)))}
    with pytest.raises(KeyError):
        dfs_in_order(RecordingVisitor(), blocks, _seq_id(0))
    with pytest.raises(KeyError):
        dfs_pre_order_mut(RecordingVisitor(), blocks, _seq_id(0))