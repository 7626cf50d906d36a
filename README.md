# wasmweave

`wasmweave` is a pure-Python library of building blocks for representing and
transforming WebAssembly modules. It has no runtime dependencies.

## What is in it

- `wasmweave.ids`: `Id`, a typed identifier (`kind` plus `index`), and
  `Arena`, which hands ids out. Items can be deleted, but their ids are never
  reused. When an item is deleted, its `on_delete` hook is called, if it has
  one.
- `wasmweave.ops`: the operator enums `BinaryOp` and `UnaryOp`, and `LaneOp`,
  which pairs a lane-replace or lane-extract operator with a checked lane
  index. It also holds the memory access descriptions: `MemoryShape`,
  `LoadKind`, `StoreKind`, `ExtendedLoad`, `LoadSimdKind` and `MemArg`.
  For atomic operations there are `AtomicOp` and `AtomicWidth`. Constants are
  `Value` objects (`Value.i32`, `i64`, `f32`, `f64`, `v128`). `Value.encode()`
  returns the bytes of the matching `*.const` instruction.
- `wasmweave.ir`: the instruction tree. Its classes are `Local`,
  `InstrSeqType` (simple or multi-value), `InstrLocId`, and `InstrSeq`, which
  is a list of `(instr, location)` pairs. There is one class for each
  instruction: `Block`, `Loop`, `IfElse`, `Call`, `Const`, `Load`, `Store`,
  `BrTable`, `V128Shuffle` and the rest.
  `Instr.following_instructions_are_unreachable()` is true for `Unreachable`,
  `Br`, `BrTable` and `Return`.
- `wasmweave.traversals`: `dfs_in_order` with `Visitor`, and
  `dfs_pre_order_mut` with `VisitorMut`. Both walks are iterative and
  depth-first.
- `wasmweave.data`: data segments, held in `ModuleData`. The classes are
  `Data`, `ActiveData` and `ActiveDataLocation`.
- `wasmweave.elements`: element segments, held in `ModuleElements`. The
  classes are `Element`, `ElementKind` and `ElementMode`.
- `wasmweave.exports`: exports, held in `ModuleExports`. The classes are
  `Export`, `ExportItem` and `ExportKind`.
- `wasmweave.custom`: custom sections. `ModuleCustomSections` holds them.
  Your own sections subclass `CustomSection`. `RawCustomSection` keeps a
  section as bytes. Sections are named by `UntypedCustomSectionId` or
  `TypedCustomSectionId`.
- `wasmweave.config`: `ModuleConfig`, a set of parse and emit flags with two
  optional callbacks. `copy()` drops the callbacks.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Exports

```python
from wasmweave.ids import Id
from wasmweave.exports import ModuleExports

exports = ModuleExports()
func_id = Id("function", 0)
export_id = exports.add("main", func_id)   # a bare id becomes an ExportItem

assert exports.get_exported_func(func_id).name == "main"
exports.delete(export_id)
assert exports.get_exported_func(func_id) is None
```

## Walking instructions

`dfs_in_order` takes three arguments:

- a visitor;
- a mapping from sequence ids to `InstrSeq`;
- the id of the entry sequence.

It visits a nested sequence completely at the point where its `Block`, `Loop`
or `IfElse` appears.

A visitor may define handlers, which are found by name:

- `visit_<snake_name>(instr)`, for example `visit_const` or `visit_if_else`;
- `visit_<kind>_id(id)` for each id that an instruction refers to, for example
  `visit_function_id`, with `visit_id(id)` as the fallback;
- `visit_value(value)`.

```python
from wasmweave.ids import Arena
from wasmweave.ir import Block, Const, Drop, InstrLocId, InstrSeq, InstrSeqType
from wasmweave.ops import Value
from wasmweave.traversals import Visitor, dfs_in_order

seqs = Arena("instr_seq")
entry = seqs.alloc_with_id(lambda i: InstrSeq(i, InstrSeqType.simple(None)))
inner = seqs.alloc_with_id(lambda i: InstrSeq(i, InstrSeqType.simple(None)))
blocks = dict(seqs.items())

loc = InstrLocId.default()
blocks[entry].instrs += [(Const(Value.i32(1)), loc), (Drop(), loc), (Block(inner), loc)]
blocks[inner].instrs += [(Const(Value.i32(2)), loc), (Drop(), loc)]

class Consts(Visitor):
    def __init__(self):
        self.seen = []

    def visit_const(self, instr):
        self.seen.append(str(instr.value))

visitor = Consts()
dfs_in_order(visitor, blocks, entry)
assert visitor.seen == ["1", "2"]
```

`dfs_pre_order_mut` visits every instruction of a sequence before the
sequences nested in it. It uses the same handler names with a `_mut` suffix.
A `visit_<kind>_id_mut`, `visit_id_mut`, `visit_value_mut` or
`visit_type_id_mut` handler that returns a value replaces the visited item.

The base visitor methods keep `depth` and `current_location` up to date. If you
override a base method and want these kept, call `super()`.

## Custom sections

Subclass `CustomSection`. Give the subclass a `name` and implement
`payload(ids_to_indices)`. `ModuleCustomSections.add` returns a
`TypedCustomSectionId`. With that id, `get` and `delete` return the section
only if it is of that type.

- `get_typed` and `delete_typed` find the first section of a given class.
- `remove_raw(name)` takes out the first `RawCustomSection` with that name.

## What it does not do

- The package has no `Module` type that ties the sections together.
- It does not read `.wasm` binaries and does not write whole modules. The only
  binary encoding it produces is `Value.encode()`.
- It has no function builder, no type, table, memory or global sections, and
  no command-line tool.
- `ModuleConfig` only holds settings. Nothing in the package reads them.