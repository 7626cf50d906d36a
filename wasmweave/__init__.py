"""Id arenas, instruction IR, traversals, module sections and configuration for WebAssembly transformations."""

__version__ = "0.1.0"

__all__ = [
    "config",
    "custom",
    "data",
    "elements",
    "exports",
    "ids",
    "ir",
    "ops",
    "traversals",
]