"""Per-invocation registry of union definitions."""

from __future__ import annotations

import logging

from summum.ast_nodes import TypeDefinition
from summum.errors import CompileError, Diagnostic

logger = logging.getLogger(__name__)


class TypeRegistry:
    """Name-keyed table of the definitions of one generation unit.

    Filled during the first pass, then frozen; method-template blocks are
    only resolved against a frozen registry so they can name definitions
    that appear later in the unit.
    """

    def __init__(self) -> None:
        self._types: dict[str, TypeDefinition] = {}
        self._frozen = False

    @classmethod
    def from_definitions(cls, definitions: list[TypeDefinition]) -> TypeRegistry:
        """Register every definition and freeze.

        Raises CompileError if two definitions share a name.
        """
        registry = cls()
        diagnostics: list[Diagnostic] = []
        for defn in definitions:
            existing = registry.register(defn)
            if existing is not None:
                diagnostics.append(
                    Diagnostic.error("E201", f"`{defn.name}` is defined more than once",
                                     defn.span, "redefined here")
                    .also(existing.span, "first defined here")
                )
        if diagnostics:
            raise CompileError(diagnostics)
        registry.freeze()
        return registry

    def register(self, defn: TypeDefinition) -> TypeDefinition | None:
        """Add a definition. Returns the existing one on a duplicate name."""
        if self._frozen:
            raise RuntimeError("type registry is frozen")
        existing = self._types.get(defn.name)
        if existing is not None:
            return existing
        self._types[defn.name] = defn
        logger.debug("registered %s (%d variants)", defn.name, len(defn.variants))
        return None

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup(self, name: str) -> TypeDefinition | None:
        return self._types.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._types

    def __len__(self) -> int:
        return len(self._types)

    def names(self) -> list[str]:
        return list(self._types)
