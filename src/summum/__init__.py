"""summum: Rust sum-type generator."""

from summum.errors import CompileError
from summum.expand import ExpansionResult, expand_source
from summum.generator import GenerationResult, generate

__version__ = "0.1.0"

__all__ = [
    "CompileError",
    "ExpansionResult",
    "GenerationResult",
    "expand_source",
    "generate",
]
