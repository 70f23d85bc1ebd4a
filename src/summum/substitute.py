"""Structural identifier substitution over token trees.

Both the method specializer and the struct-variant expander rewrite a small
set of reserved names throughout an arbitrarily nested tree. They share this
module: an ``Environment`` maps exact identifiers to replacement trees and,
optionally, rewrites every identifier that ends in a reserved suffix.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from summum.ast_nodes import Tokens
from summum.naming import raw_if_keyword
from summum.tokens import Group, Token, TokenKind, TokenTree, punct, with_ws


@dataclass(frozen=True)
class Environment:
    exact: dict[str, Tokens] = field(default_factory=dict)
    # identifiers ending in `suffix` have it replaced by `suffix_value`
    suffix: str | None = None
    suffix_value: str = ""
    # names left alone when they start a path (`self::module`)
    keep_before_path: frozenset[str] = frozenset()
    # names whose multi-token replacement becomes `<T>` before a path (`<Vec<T>>::new`)
    qualify_before_path: frozenset[str] = frozenset()


def _starts_path(trees: list[TokenTree], i: int) -> bool:
    """True if the trees after index ``i`` begin with `::`."""
    if i + 2 >= len(trees):
        return False
    nxt, after = trees[i + 1], trees[i + 2]
    return (isinstance(nxt, Token) and nxt.is_punct(":") and nxt.joint
            and after.is_punct(":"))


def rename_with_suffix(name: str, suffix: str, value: str) -> str | None:
    """``rename_with_suffix("into_inner_var", "inner_var", "f64")`` -> ``into_f64``."""
    bare = name.removeprefix("r#")
    if bare == suffix:
        return raw_if_keyword(value)
    if bare.endswith("_" + suffix):
        return raw_if_keyword(bare[: -len(suffix)] + value)
    return None


def substitute(trees: list[TokenTree], env: Environment) -> Tokens:
    """Return a copy of ``trees`` with every reserved name rewritten."""
    out: Tokens = []
    for i, tree in enumerate(trees):
        if isinstance(tree, Group):
            out.append(Group(tree.delimiter, substitute(tree.children, env), tree.span,
                             tree.ws, tree.close_ws))
            continue
        if tree.kind != TokenKind.IDENT:
            out.append(tree)
            continue

        replacement = env.exact.get(tree.value)
        if replacement is not None:
            before_path = _starts_path(trees, i)
            if before_path and tree.value in env.keep_before_path:
                out.append(tree)
                continue
            if before_path and tree.value in env.qualify_before_path and len(replacement) > 1:
                replacement = [punct('<', ws=tree.ws), *replacement, punct('>', ws="")]
                replacement[1] = with_ws(replacement[1], "")
                out.extend(replacement)
                continue
            out.append(with_ws(replacement[0], tree.ws))
            out.extend(replacement[1:])
            continue

        if env.suffix is not None:
            renamed = rename_with_suffix(tree.value, env.suffix, env.suffix_value)
            if renamed is not None:
                out.append(Token(tree.kind, renamed, tree.span, tree.joint, tree.ws))
                continue
        out.append(tree)
    return out
