"""Identifier case conversion for generated names."""

from __future__ import annotations

import re

from summum.tokens import KEYWORDS, Group, TokenKind, TokenTree

_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_SEPARATORS = re.compile(r"[^A-Za-z0-9]+")


def split_words(text: str) -> list[str]:
    """Split text into words at separators and case boundaries.

    ``NestedOrNot`` -> ``["Nested", "Or", "Not"]``, ``HTTPServer`` ->
    ``["HTTP", "Server"]``; digits stay attached to the preceding word, so
    ``F64`` is one word.
    """
    words: list[str] = []
    for chunk in _SEPARATORS.split(text):
        if chunk:
            words.extend(w for w in _BOUNDARY.split(chunk) if w)
    return words


def to_snake_case(text: str) -> str:
    return "_".join(w.lower() for w in split_words(text))


def to_upper_camel_case(text: str) -> str:
    return "".join(w[0].upper() + w[1:].lower() for w in split_words(text))


def raw_if_keyword(name: str) -> str:
    if name in KEYWORDS and name not in ("self", "Self", "super", "crate"):
        return f"r#{name}"
    return name


def snake_ident(base: str, variant: str) -> str:
    """``snake_ident("try_borrow", "NestedOrNot")`` -> ``try_borrow_nested_or_not``."""
    snake = to_snake_case(variant)
    return raw_if_keyword(f"{base}_{snake}" if base else snake)


def _type_words(trees: list[TokenTree]) -> list[str]:
    words: list[str] = []
    for tree in trees:
        if isinstance(tree, Group):
            words.extend(_type_words(tree.children))
        elif tree.kind == TokenKind.IDENT:
            words.append(tree.value.removeprefix("r#"))
        elif tree.kind == TokenKind.LITERAL and tree.value.isalnum():
            words.append(tree.value)
    return words


def ident_from_type(trees: list[TokenTree]) -> str | None:
    """Render a whole type into one UpperCamelCase identifier.

    Lifetimes and punctuation are dropped: ``&'a Vec<V>`` -> ``VecV``.
    Returns ``None`` when nothing usable is left.
    """
    name = to_upper_camel_case(" ".join(_type_words(trees)))
    if not name or name[0].isdigit():
        return None
    return name
