"""Drive one generation invocation: lex, parse, register, emit, specialize."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from summum.ast_nodes import GenerationUnit, TypeDefinition
from summum.config import SummumConfig
from summum.emitter import CoreTypeEmitter
from summum.errors import Diagnostic, has_errors
from summum.lexer import Lexer
from summum.parser import Parser
from summum.registry import TypeRegistry
from summum.specializer import MethodSpecializer
from summum.struct_variants import StructVariantExpander
from summum.tokens import TokenTree

logger = logging.getLogger(__name__)

BANNER = "// Generated by summum. Do not edit."


@dataclass
class GenerationResult:
    code: str
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not has_errors(self.diagnostics)


class Generator:
    """Generate the Rust items of one unit from its token trees."""

    def __init__(self, config: SummumConfig | None = None) -> None:
        self.config = config or SummumConfig()
        self.diagnostics: list[Diagnostic] = []

    def parse(self, trees: list[TokenTree], filename: str) -> GenerationUnit:
        parser = Parser(trees, filename)
        unit = parser.parse()
        self.diagnostics.extend(parser.diagnostics)
        return unit

    def generate(self, unit: GenerationUnit) -> str:
        """Emit every definition, then every method-template block.

        Raises CompileError when two definitions share a name.
        """
        expander = StructVariantExpander(self.config.naming, self.config.emit)
        # Record payloads are bound before registration so template blocks
        # see the generated record type as the payload.
        definitions: list[TypeDefinition] = [expander.bind(d) for d in unit.definitions]
        registry = TypeRegistry.from_definitions(definitions)
        logger.debug("registry frozen: %s", ", ".join(registry.names()))

        parts: list[str] = []
        if self.config.emit.banner:
            parts.append(BANNER + "\n")

        for defn in definitions:
            parts.append(expander.emit(defn))
            emitter = CoreTypeEmitter(defn, self.config.emit)
            parts.append(emitter.emit())
            self.diagnostics.extend(emitter.diagnostics)

        specializer = MethodSpecializer(registry, self.config.naming)
        for block in unit.impls:
            parts.append(specializer.emit(block))
        self.diagnostics.extend(specializer.diagnostics)

        return "".join(parts).rstrip("\n") + "\n"


def generate_trees(trees: list[TokenTree], filename: str = "<summum>",
                   config: SummumConfig | None = None) -> GenerationResult:
    """Generate from already-lexed trees. Raises CompileError on syntax errors."""
    generator = Generator(config)
    unit = generator.parse(trees, filename)
    code = generator.generate(unit)
    return GenerationResult(code, generator.diagnostics)


def generate(source: str, filename: str = "<summum>",
             config: SummumConfig | None = None) -> GenerationResult:
    """Generate Rust code from the body of one summum invocation.

    Raises CompileError on lexing, parsing or registration errors.
    """
    trees = Lexer(source, filename).lex()
    return generate_trees(trees, filename, config)
