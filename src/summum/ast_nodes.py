"""Declarations of a summum generation unit."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from summum.source import Span
from summum.tokens import Group, TokenTree

Tokens = list[TokenTree]


class DefinitionForm(Enum):
    LIST = "list"          # type Name = A | B as Alias;
    DECLARED = "declared"  # enum Name { A(T), ... }
    RECORD = "record"      # struct Name variants<T> { ... } { ... }


# ── Generics ─────────────────────────────────────────────────────


class ParamKind(Enum):
    LIFETIME = "lifetime"
    TYPE = "type"
    CONST = "const"


@dataclass(frozen=True)
class GenericParam:
    kind: ParamKind
    name: str
    tokens: Tokens  # full text, bounds and default included
    span: Span


@dataclass(frozen=True)
class Generics:
    params: list[GenericParam] = field(default_factory=list)
    where_clause: Tokens = field(default_factory=list)  # without `where`

    def type_param_names(self) -> list[str]:
        return [p.name for p in self.params if p.kind == ParamKind.TYPE]

    def __bool__(self) -> bool:
        return bool(self.params)


# ── Union definitions ────────────────────────────────────────────


@dataclass(frozen=True)
class Field:
    name: str
    ty: Tokens
    vis: Tokens
    attrs: list[Tokens]
    span: Span


@dataclass(frozen=True)
class Variant:
    name: str
    payload: Tokens
    attrs: list[Tokens]
    span: Span
    # record form only: runtime placeholder -> type
    bindings: dict[str, Tokens] = field(default_factory=dict)


@dataclass(frozen=True)
class TypeDefinition:
    name: str
    form: DefinitionForm
    vis: Tokens
    attrs: list[Tokens]
    generics: Generics
    variants: list[Variant]
    span: Span
    fields: list[Field] = field(default_factory=list)
    runtime_generics: list[str] = field(default_factory=list)
    superset: str | None = None

    def variant_names(self) -> list[str]:
        return [v.name for v in self.variants]


# ── Method-template blocks ───────────────────────────────────────


@dataclass(frozen=True)
class MethodTemplate:
    name: str
    attrs: list[Tokens]
    vis: Tokens
    qualifiers: Tokens  # const / async / unsafe / extern "abi"
    generics: Tokens    # `<...>` including the angle brackets
    receiver: Tokens | None
    params: list[Tokens]
    ret: Tokens | None
    where_clause: Tokens
    body: Group
    span: Span


@dataclass(frozen=True)
class VerbatimItem:
    """A non-function impl item, emitted unchanged."""

    tokens: Tokens
    span: Span


ImplItem = Union[MethodTemplate, VerbatimItem]


@dataclass(frozen=True)
class ImplBlock:
    attrs: list[Tokens]
    generics: Tokens  # `<...>` including the angle brackets
    self_ty: Tokens
    target: str       # first identifier of the self type
    where_clause: Tokens
    items: list[ImplItem]
    span: Span


Item = Union[TypeDefinition, ImplBlock]


@dataclass(frozen=True)
class GenerationUnit:
    items: list[Item]
    span: Span

    @property
    def definitions(self) -> list[TypeDefinition]:
        return [i for i in self.items if isinstance(i, TypeDefinition)]

    @property
    def impls(self) -> list[ImplBlock]:
        return [i for i in self.items if isinstance(i, ImplBlock)]
