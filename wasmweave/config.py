"""Settings that control how a module is parsed and emitted."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Callable

from .ir import InstrLocId


@dataclass(repr=False)
class ModuleConfig:
    """Configuration for parsing a module.

    ``on_parse`` is called after a module was parsed, with the module and the
    map from the original indices to ids; ``on_instr_loc`` turns a bytecode
    offset into an :class:`InstrLocId`. Copies never carry these callbacks.
    """

    generate_dwarf: bool = False
    generate_name_section: bool = True
    generate_synthetic_names_for_anonymous_items: bool = False
    strict_validate: bool = True
    generate_producers_section: bool = True
    only_stable_features: bool = False
    preserve_code_transform: bool = False
    on_parse: Callable[[Any, Any], None] | None = None
    on_instr_loc: Callable[[int], InstrLocId] | None = None

    _CALLBACKS = ("on_parse", "on_instr_loc")

    def copy(self) -> ModuleConfig:
        """A copy with the same flags and no callbacks."""
        return replace(self, on_parse=None, on_instr_loc=None)

    def __repr__(self) -> str:
        parts = []
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in self._CALLBACKS and value is not None:
                value = ".."
            parts.append(f"{f.name}={value!r}")
        return f"ModuleConfig({', '.join(parts)})"