"""Per-variant resolution of directive pseudo-calls in method bodies.

Three directives can appear anywhere in a template body:

    summum_restrict!(A, B);   // the rest of the block only runs for A or B
    summum_exclude!(A);       // the rest of the block never runs for A
    summum_variant_name!()    // the current variant's name as a string

Restrict and exclude are resolved textually for each variant: the kept form
drops the directive, the rejected form replaces the directive and the rest of
its enclosing block with a panic. Nothing proves the panic unreachable; it
fires only if the generated program actually takes that path.
"""

from __future__ import annotations

from dataclasses import dataclass

from summum.ast_nodes import Tokens
from summum.config import NamingConfig
from summum.source import Span
from summum.tokens import Delimiter, Group, TokenTree, ident, punct, str_literal


class DirectiveError(Exception):
    """A directive names a variant its definition does not declare."""

    def __init__(self, message: str, span: Span) -> None:
        super().__init__(message)
        self.span = span


@dataclass(frozen=True)
class DirectiveContext:
    variant: str
    declared: frozenset[str]
    method: str
    naming: NamingConfig


def _match_call(trees: list[TokenTree], i: int, names: tuple[str, ...]) -> Group | None:
    """Return the argument group if ``trees[i:]`` starts with `name!(...)`."""
    if i + 2 >= len(trees):
        return None
    head, bang, args = trees[i], trees[i + 1], trees[i + 2]
    if not (head.is_ident() and head.value in names and bang.is_punct('!')):
        return None
    if isinstance(args, Group) and args.delimiter == Delimiter.PAREN:
        return args
    return None


def _variant_args(args: Group, ctx: DirectiveContext, directive: str) -> set[str]:
    listed: set[str] = set()
    for tree in args.children:
        if tree.is_punct(','):
            continue
        if not tree.is_ident():
            raise DirectiveError(f"`{directive}!` expects variant names", tree.span)
        if tree.value not in ctx.declared:
            raise DirectiveError(
                f"`{directive}!` names unknown variant `{tree.value}`", tree.span,
            )
        listed.add(tree.value)
    return listed


def unreachable_panic(ctx: DirectiveContext, ws: str) -> Tokens:
    message = f"internal error: unreachable variant `{ctx.variant}` in `{ctx.method}`"
    return [
        ident("panic", ws=ws),
        punct('!', ws=""),
        Group(Delimiter.PAREN, [str_literal(message, ws="")], ws=""),
    ]


def resolve(trees: list[TokenTree], ctx: DirectiveContext) -> Tokens:
    """Resolve every directive in ``trees`` (recursively) for one variant."""
    naming = ctx.naming
    out: Tokens = []
    i = 0
    while i < len(trees):
        tree = trees[i]

        args = _match_call(trees, i, (naming.restrict, naming.exclude))
        if args is not None:
            directive = tree.value  # type: ignore[union-attr]
            listed = _variant_args(args, ctx, directive)
            keep = (ctx.variant in listed) == (directive == naming.restrict)
            i += 3
            if i < len(trees) and trees[i].is_punct(';'):
                i += 1
            if not keep:
                out.extend(unreachable_panic(ctx, tree.ws))
                return out
            continue

        args = _match_call(trees, i, (naming.variant_name,))
        if args is not None:
            out.append(str_literal(ctx.variant, ws=tree.ws))
            i += 3
            continue

        if isinstance(tree, Group):
            tree = Group(tree.delimiter, resolve(tree.children, ctx), tree.span,
                         tree.ws, tree.close_ws)
        out.append(tree)
        i += 1
    return out
