"""Parser for summum generation units.

Turns the token trees of one unit into ``TypeDefinition`` and ``ImplBlock``
declarations using recursive descent. Three surface forms declare a union:

    type Name<G> = T1 as Alias | T2;                     // list form
    enum Name<G> { Case(T1), Case2(T2) }                  // declared-case form
    struct Name<G> variants<R> { Case(R = T) } { f: R }   // record form

``impl`` blocks hold the method templates that are specialized per variant.
"""

from __future__ import annotations

from collections.abc import Callable

from summum.ast_nodes import (
    DefinitionForm,
    Field,
    GenerationUnit,
    GenericParam,
    Generics,
    ImplBlock,
    ImplItem,
    Item,
    MethodTemplate,
    ParamKind,
    Tokens,
    TypeDefinition,
    Variant,
    VerbatimItem,
)
from summum.errors import CompileError, Diagnostic, has_errors
from summum.naming import ident_from_type
from summum.printer import render_inline
from summum.source import Span
from summum.tokens import Delimiter, Group, Token, TokenKind, TokenTree, punct

_ITEM_KEYWORDS = frozenset({"type", "enum", "struct", "impl", "pub"})
_FN_QUALIFIERS = frozenset({"const", "async", "unsafe", "extern"})

Stop = Callable[[TokenTree], bool]


class _ParseError(Exception):
    """Raised to unwind to the next item after a diagnostic was recorded."""


def _describe(tree: TokenTree) -> str:
    if isinstance(tree, Group):
        return f"`{tree.delimiter.open}`"
    if tree.kind == TokenKind.EOF:
        return "end of input"
    return f"`{tree.value}`"


def _is_arrow(prev: TokenTree | None, tree: TokenTree) -> bool:
    """True for the `>` of `->` or `=>`, which never closes an angle bracket."""
    return (tree.is_punct('>') and isinstance(prev, Token) and prev.joint
            and (prev.is_punct('-') or prev.is_punct('=')))


def split_commas(trees: list[TokenTree]) -> list[Tokens]:
    """Split on commas outside angle brackets, dropping a trailing empty part."""
    parts: list[Tokens] = [[]]
    depth = 0
    prev: TokenTree | None = None
    for tree in trees:
        if tree.is_punct('<'):
            depth += 1
        elif tree.is_punct('>') and depth > 0 and not _is_arrow(prev, tree):
            depth -= 1
        if tree.is_punct(',') and depth == 0:
            parts.append([])
        else:
            parts[-1].append(tree)
        prev = tree
    if not parts[-1]:
        parts.pop()
    return parts


def canonical_type(trees: list[TokenTree]) -> Tokens:
    """Insert the `::` separator before generic arguments: `Vec<T>` -> `Vec::<T>`."""
    out: Tokens = []
    for tree in trees:
        if isinstance(tree, Group):
            tree = Group(tree.delimiter, canonical_type(tree.children), tree.span,
                         tree.ws, tree.close_ws)
        elif tree.is_punct('<') and out and out[-1].is_ident():
            before = out[-2] if len(out) > 1 else None
            if not (before is not None and before.is_punct(':')):
                out.append(punct(':', joint=True, ws=""))
                out.append(punct(':', ws=""))
                tree = Token(tree.kind, tree.value, tree.span, tree.joint, "")
        out.append(tree)
    return out


class _Stream:
    """A cursor over one level of token trees."""

    def __init__(self, trees: list[TokenTree], end: Span) -> None:
        self.trees = trees
        self.pos = 0
        self._eof = Token(TokenKind.EOF, "", end)

    def current(self) -> TokenTree:
        return self.peek(0)

    def peek(self, offset: int = 0) -> TokenTree:
        idx = self.pos + offset
        if idx < len(self.trees):
            return self.trees[idx]
        return self._eof

    def at_end(self) -> bool:
        return self.pos >= len(self.trees)

    def advance(self) -> TokenTree:
        tree = self.current()
        if not self.at_end():
            self.pos += 1
        return tree

    def at_ident(self, name: str | None = None) -> bool:
        return self.current().is_ident(name)

    def at_punct(self, ch: str) -> bool:
        return self.current().is_punct(ch)

    def at_op(self, op: str) -> bool:
        """Match a multi-character operator made of joint punctuation."""
        for i, ch in enumerate(op):
            tok = self.peek(i)
            if not tok.is_punct(ch):
                return False
            if i < len(op) - 1 and not tok.joint:
                return False
        return True

    def at_group(self, delimiter: Delimiter) -> bool:
        cur = self.current()
        return isinstance(cur, Group) and cur.delimiter == delimiter

    def previous(self) -> TokenTree | None:
        return self.trees[self.pos - 1] if self.pos > 0 else None


class Parser:
    """Parses the token trees of one generation unit."""

    def __init__(self, trees: list[TokenTree], filename: str = "<stdin>") -> None:
        self.trees = trees
        self.filename = filename
        self.diagnostics: list[Diagnostic] = []

    # ── Diagnostics ──────────────────────────────────────────────

    def _error(self, message: str, span: Span) -> None:
        self.diagnostics.append(Diagnostic.error("E200", message, span))

    def _fail(self, message: str, span: Span) -> _ParseError:
        self._error(message, span)
        return _ParseError()

    def _expect_ident(self, s: _Stream, name: str | None = None) -> Token:
        tok = s.current()
        if tok.is_ident(name):
            s.advance()
            return tok  # type: ignore[return-value]
        what = f"`{name}`" if name else "identifier"
        raise self._fail(f"expected {what}, found {_describe(tok)}", tok.span)

    def _expect_punct(self, s: _Stream, ch: str) -> Token:
        tok = s.current()
        if tok.is_punct(ch):
            s.advance()
            return tok  # type: ignore[return-value]
        raise self._fail(f"expected `{ch}`, found {_describe(tok)}", tok.span)

    def _expect_group(self, s: _Stream, delimiter: Delimiter) -> Group:
        tok = s.current()
        if isinstance(tok, Group) and tok.delimiter == delimiter:
            s.advance()
            return tok
        raise self._fail(
            f"expected `{delimiter.open}`, found {_describe(tok)}", tok.span,
        )

    def _comma_parts(self, trees: list[TokenTree], what: str, span: Span) -> list[Tokens]:
        """`split_commas`, failing on an empty slot such as `A,,B`."""
        parts = split_commas(trees)
        for part in parts:
            if not part:
                raise self._fail(f"expected {what}, found `,`", span)
        return parts

    def _end_span(self, trees: list[TokenTree]) -> Span:
        if trees:
            return trees[-1].span.end_point()
        return Span.point(self.filename, 1, 1)

    def _stream(self, group: Group) -> _Stream:
        return _Stream(group.children, group.span.end_point())

    def _synchronize(self, s: _Stream) -> None:
        """Skip to the start of the next item."""
        s.advance()
        while not s.at_end():
            prev = s.previous()
            ends_item = (prev is not None and prev.is_punct(';')) or (
                isinstance(prev, Group) and prev.delimiter == Delimiter.BRACE)
            cur = s.current()
            starts_item = cur.is_punct('#') or (
                cur.kind == TokenKind.IDENT and cur.value in _ITEM_KEYWORDS
            ) if isinstance(cur, Token) else False
            if ends_item and starts_item:
                return
            s.advance()

    # ── Top level ────────────────────────────────────────────────

    def parse(self) -> GenerationUnit:
        """Parse every item of the unit. Raises CompileError on syntax errors."""
        s = _Stream(self.trees, self._end_span(self.trees))
        items: list[Item] = []
        while not s.at_end():
            try:
                items.append(self._parse_item(s))
            except _ParseError:
                self._synchronize(s)

        if has_errors(self.diagnostics):
            raise CompileError(self.diagnostics)
        if self.trees:
            span = self.trees[0].span.to(self.trees[-1].span)
        else:
            span = Span.point(self.filename, 1, 1)
        return GenerationUnit(items=items, span=span)

    def _parse_item(self, s: _Stream) -> Item:
        attrs = self._parse_attrs(s)
        vis = self._parse_vis(s)
        tok = s.current()

        if tok.is_ident("type"):
            return self._parse_list_form(s, attrs, vis)
        if tok.is_ident("enum"):
            return self._parse_declared_form(s, attrs, vis)
        if tok.is_ident("struct"):
            return self._parse_record_form(s, attrs, vis)
        if tok.is_ident("impl"):
            if vis:
                raise self._fail("visibility is not permitted on `impl` blocks", vis[0].span)
            return self._parse_impl(s, attrs)

        raise self._fail(
            f"expected `enum`, `type`, `struct` or `impl`, found {_describe(tok)}",
            tok.span,
        )

    def _parse_attrs(self, s: _Stream) -> list[Tokens]:
        attrs: list[Tokens] = []
        while s.at_punct('#') and isinstance(s.peek(1), Group):
            hash_tok = s.advance()
            attrs.append([hash_tok, s.advance()])
        return attrs

    def _parse_vis(self, s: _Stream) -> Tokens:
        if not s.at_ident("pub"):
            return []
        vis: Tokens = [s.advance()]
        if s.at_group(Delimiter.PAREN):
            vis.append(s.advance())
        return vis

    def _take_superset(self, attrs: list[Tokens]) -> tuple[list[Tokens], str | None]:
        """Pull a `#[summum(super = Name)]` attribute out of the forwarded list."""
        kept: list[Tokens] = []
        superset = None
        for attr in attrs:
            group = attr[-1]
            children = group.children if isinstance(group, Group) else []
            if (len(children) == 2 and children[0].is_ident("summum")
                    and isinstance(children[1], Group)):
                args = children[1].children
                if (len(args) == 3 and args[0].is_ident("super") and args[1].is_punct('=')
                        and args[2].is_ident()):
                    superset = args[2].value  # type: ignore[union-attr]
                    self.diagnostics.append(Diagnostic.note(
                        "N100",
                        f"superset `{superset}` is recorded but does not affect generated code",
                        args[2].span,
                    ))
                    continue
                raise self._fail("expected `summum(super = Name)`", group.span)
            kept.append(attr)
        return kept, superset

    # ── Generics, where clauses, types ───────────────────────────

    def _take_angle(self, s: _Stream) -> Tokens:
        """Consume `<...>` and return the tokens between the brackets."""
        open_tok = self._expect_punct(s, '<')
        inner: Tokens = []
        depth = 1
        prev: TokenTree | None = open_tok
        while not s.at_end():
            tree = s.advance()
            if tree.is_punct('<'):
                depth += 1
            elif tree.is_punct('>') and not _is_arrow(prev, tree):
                depth -= 1
                if depth == 0:
                    return inner
            inner.append(tree)
            prev = tree
        raise self._fail("unclosed `<`", open_tok.span)

    def _parse_generics(self, s: _Stream) -> list[GenericParam]:
        if not s.at_punct('<'):
            return []
        params: list[GenericParam] = []
        open_span = s.current().span
        for part in self._comma_parts(self._take_angle(s), "generic parameter", open_span):
            head = part[0]
            if isinstance(head, Token) and head.kind == TokenKind.LIFETIME:
                params.append(GenericParam(ParamKind.LIFETIME, head.value, part, head.span))
            elif head.is_ident("const") and len(part) > 1 and part[1].is_ident():
                params.append(GenericParam(ParamKind.CONST, part[1].value, part, head.span))
            elif head.is_ident():
                params.append(GenericParam(ParamKind.TYPE, head.value, part, head.span))
            else:
                raise self._fail(f"expected generic parameter, found {_describe(head)}",
                                 head.span)
        return params

    def _collect(self, s: _Stream, stop: Stop) -> Tokens:
        """Collect trees up to ``stop`` at angle-bracket depth zero."""
        out: Tokens = []
        depth = 0
        prev: TokenTree | None = None
        while not s.at_end():
            tree = s.current()
            if depth == 0 and stop(tree):
                break
            if tree.is_punct('<'):
                depth += 1
            elif tree.is_punct('>') and depth > 0 and not _is_arrow(prev, tree):
                depth -= 1
            out.append(s.advance())
            prev = tree
        return out

    def _parse_where(self, s: _Stream, stop: Stop) -> Tokens:
        if not s.at_ident("where"):
            return []
        where_tok = s.advance()
        clause = self._collect(s, stop)
        if not clause:
            raise self._fail("expected predicates after `where`", where_tok.span)
        return clause

    def _parse_type(self, s: _Stream, stop: Stop) -> Tokens:
        ty = self._collect(s, stop)
        if not ty:
            tok = s.current()
            raise self._fail(f"expected a type, found {_describe(tok)}", tok.span)
        return ty

    # ── List form ────────────────────────────────────────────────

    def _parse_list_form(self, s: _Stream, attrs: list[Tokens], vis: Tokens) -> TypeDefinition:
        start = s.advance().span  # 'type'
        attrs, superset = self._take_superset(attrs)
        name = self._expect_ident(s)
        params = self._parse_generics(s)
        where = self._parse_where(s, lambda t: t.is_punct('='))
        self._expect_punct(s, '=')

        variants: list[Variant] = []
        seen: set[str] = set()
        while True:
            ty = self._parse_type(
                s, lambda t: t.is_ident("as") or t.is_punct('|') or t.is_punct(';'))
            if s.at_ident("as"):
                s.advance()
                alias = self._expect_ident(s)
                case_name, case_span = alias.value, alias.span
            else:
                derived = ident_from_type(ty)
                case_span = ty[0].span.to(ty[-1].span)
                if derived is None:
                    raise self._fail(
                        f"cannot derive a variant name from `{render_inline(ty)}`;"
                        " add `as Name`",
                        case_span,
                    )
                case_name = derived
            if case_name in seen:
                raise self._fail(f"duplicate variant `{case_name}` in `{name.value}`",
                                 case_span)
            seen.add(case_name)
            variants.append(Variant(case_name, ty, [], case_span))

            if s.at_punct(';'):
                end = s.advance().span
                break
            self._expect_punct(s, '|')

        return TypeDefinition(
            name=name.value, form=DefinitionForm.LIST, vis=vis, attrs=attrs,
            generics=Generics(params, where), variants=variants,
            span=start.to(end), superset=superset,
        )

    # ── Declared-case form ───────────────────────────────────────

    def _parse_declared_form(self, s: _Stream, attrs: list[Tokens],
                             vis: Tokens) -> TypeDefinition:
        start = s.advance().span  # 'enum'
        attrs, superset = self._take_superset(attrs)
        name = self._expect_ident(s)
        params = self._parse_generics(s)
        where = self._parse_where(
            s, lambda t: isinstance(t, Group) and t.delimiter == Delimiter.BRACE)
        body = self._expect_group(s, Delimiter.BRACE)

        variants: list[Variant] = []
        inner = self._stream(body)
        while not inner.at_end():
            case_attrs = self._parse_attrs(inner)
            case = self._expect_ident(inner)
            if inner.at_group(Delimiter.PAREN):
                fields = split_commas(inner.advance().children)  # type: ignore[union-attr]
                if len(fields) != 1:
                    raise self._fail(
                        f"variant `{case.value}` must carry exactly one payload type,"
                        f" found {len(fields)}",
                        case.span,
                    )
            elif inner.at_group(Delimiter.BRACE):
                raise self._fail(
                    f"struct-like variant `{case.value}` is not supported; wrap the"
                    " fields in a type or use the `struct ... variants<...>` form",
                    case.span,
                )
            else:
                raise self._fail(
                    f"variant `{case.value}` must carry exactly one payload type", case.span,
                )
            if inner.at_punct('='):
                raise self._fail("explicit discriminants are not supported",
                                 inner.current().span)
            if self._find_variant(variants, case.value):
                raise self._fail(f"duplicate variant `{case.value}` in `{name.value}`",
                                 case.span)
            variants.append(Variant(case.value, canonical_type(fields[0]), case_attrs,
                                    case.span))
            if not inner.at_end():
                self._expect_punct(inner, ',')

        return TypeDefinition(
            name=name.value, form=DefinitionForm.DECLARED, vis=vis, attrs=attrs,
            generics=Generics(params, where), variants=variants,
            span=start.to(body.span), superset=superset,
        )

    @staticmethod
    def _find_variant(variants: list[Variant], name: str) -> bool:
        return any(v.name == name for v in variants)

    # ── Record form ──────────────────────────────────────────────

    def _parse_record_form(self, s: _Stream, attrs: list[Tokens],
                           vis: Tokens) -> TypeDefinition:
        start = s.advance().span  # 'struct'
        attrs, superset = self._take_superset(attrs)
        name = self._expect_ident(s)
        params = self._parse_generics(s)
        where = self._parse_where(s, lambda t: t.is_ident("variants"))
        self._expect_ident(s, "variants")

        runtime: list[str] = []
        open_span = s.current().span
        for part in self._comma_parts(self._take_angle(s), "runtime placeholder", open_span):
            if len(part) != 1 or not part[0].is_ident():
                raise self._fail(
                    "runtime generics in `variants<...>` must be bare placeholders",
                    part[0].span,
                )
            if part[0].value in runtime:
                raise self._fail(f"duplicate placeholder `{part[0].value}`", part[0].span)
            runtime.append(part[0].value)
        if s.at_ident("where"):
            raise self._fail(
                "runtime generics in `variants<...>` may not carry a where-clause",
                s.current().span,
            )

        cases = self._expect_group(s, Delimiter.BRACE)
        fields_group = self._expect_group(s, Delimiter.BRACE)

        variants = self._parse_bound_variants(cases, runtime, name.value)
        fields = self._parse_fields(fields_group)

        return TypeDefinition(
            name=name.value, form=DefinitionForm.RECORD, vis=vis, attrs=attrs,
            generics=Generics(params, where), variants=variants,
            span=start.to(fields_group.span), fields=fields,
            runtime_generics=runtime, superset=superset,
        )

    def _parse_bound_variants(self, cases: Group, runtime: list[str],
                              union: str) -> list[Variant]:
        variants: list[Variant] = []
        inner = self._stream(cases)
        while not inner.at_end():
            case_attrs = self._parse_attrs(inner)
            case = self._expect_ident(inner)
            table = self._expect_group(inner, Delimiter.PAREN)

            bindings: dict[str, Tokens] = {}
            for part in split_commas(table.children):
                if len(part) < 3 or not part[0].is_ident() or not part[1].is_punct('='):
                    span = part[0].span if part else table.span
                    raise self._fail("expected a binding `Placeholder = Type`", span)
                key = part[0].value  # type: ignore[union-attr]
                if key not in runtime:
                    raise self._fail(
                        f"`{key}` is not a runtime generic of `{union}`", part[0].span,
                    )
                if key in bindings:
                    raise self._fail(f"`{key}` is bound twice in `{case.value}`",
                                     part[0].span)
                bindings[key] = part[2:]
            missing = [r for r in runtime if r not in bindings]
            if missing:
                raise self._fail(
                    f"variant `{case.value}` does not bind "
                    + ", ".join(f"`{m}`" for m in missing),
                    case.span,
                )
            if self._find_variant(variants, case.value):
                raise self._fail(f"duplicate variant `{case.value}` in `{union}`", case.span)
            variants.append(Variant(case.value, [], case_attrs, case.span, bindings))
            if not inner.at_end():
                self._expect_punct(inner, ',')
        return variants

    def _parse_fields(self, group: Group) -> list[Field]:
        fields: list[Field] = []
        inner = self._stream(group)
        while not inner.at_end():
            field_attrs = self._parse_attrs(inner)
            field_vis = self._parse_vis(inner)
            field_name = self._expect_ident(inner)
            self._expect_punct(inner, ':')
            ty = self._parse_type(inner, lambda t: t.is_punct(','))
            fields.append(Field(field_name.value, ty, field_vis, field_attrs,
                                field_name.span))
            if not inner.at_end():
                self._expect_punct(inner, ',')
        return fields

    # ── Method-template blocks ───────────────────────────────────

    def _parse_impl(self, s: _Stream, attrs: list[Tokens]) -> ImplBlock:
        start = s.advance().span  # 'impl'
        generics: Tokens = []
        if s.at_punct('<'):
            first = s.current()
            inner = self._take_angle(s)
            generics = [first, *inner, punct('>', ws="")]

        self_ty = self._parse_type(
            s, lambda t: t.is_ident("where") or t.is_ident("for") or (
                isinstance(t, Group) and t.delimiter == Delimiter.BRACE))
        if s.at_ident("for"):
            raise self._fail("impl for traits doesn't belong in summum block",
                             start.to(s.current().span))
        where = self._parse_where(
            s, lambda t: isinstance(t, Group) and t.delimiter == Delimiter.BRACE)
        body = self._expect_group(s, Delimiter.BRACE)

        target = self._impl_target(self_ty)
        items: list[ImplItem] = []
        inner = self._stream(body)
        while not inner.at_end():
            items.append(self._parse_impl_item(inner))

        return ImplBlock(
            attrs=attrs, generics=generics, self_ty=self_ty, target=target,
            where_clause=where, items=items, span=start.to(body.span),
        )

    def _impl_target(self, self_ty: Tokens) -> str:
        """Name of the type an impl block targets: last path segment before `<`."""
        target = None
        for tree in self_ty:
            if tree.is_punct('<'):
                break
            if tree.is_ident():
                target = tree.value  # type: ignore[union-attr]
        if target is None:
            raise self._fail(f"invalid type `{render_inline(self_ty)}` in impl block",
                             self_ty[0].span)
        return target

    def _parse_impl_item(self, s: _Stream) -> ImplItem:
        item_start = s.pos
        attrs = self._parse_attrs(s)
        vis = self._parse_vis(s)
        qualifiers: Tokens = []
        ahead = 0
        while (s.peek(ahead).is_ident() and s.peek(ahead).value in _FN_QUALIFIERS) or (
                ahead > 0 and s.peek(ahead - 1).is_ident("extern")
                and isinstance(s.peek(ahead), Token)
                and s.peek(ahead).kind == TokenKind.LITERAL):
            ahead += 1
        if s.peek(ahead).is_ident("fn"):
            qualifiers = [s.advance() for _ in range(ahead)]
        if s.at_ident("fn"):
            return self._parse_method(s, attrs, vis, qualifiers)

        # Any other item (const, type, macro call) is passed through untouched.
        while not s.at_end():
            tree = s.advance()
            if tree.is_punct(';') or (isinstance(tree, Group)
                                      and tree.delimiter == Delimiter.BRACE):
                break
        tokens = s.trees[item_start:s.pos]
        return VerbatimItem(tokens, tokens[0].span.to(tokens[-1].span))

    def _parse_method(self, s: _Stream, attrs: list[Tokens], vis: Tokens,
                      qualifiers: Tokens) -> MethodTemplate:
        start = s.advance().span  # 'fn'
        name = self._expect_ident(s)
        generics: Tokens = []
        if s.at_punct('<'):
            first = s.current()
            inner = self._take_angle(s)
            generics = [first, *inner, punct('>', ws="")]
        params_group = self._expect_group(s, Delimiter.PAREN)

        ret = None
        if s.at_op("->"):
            s.advance()
            s.advance()
            ret = self._parse_type(
                s, lambda t: t.is_ident("where") or (
                    isinstance(t, Group) and t.delimiter == Delimiter.BRACE))
        where = self._parse_where(
            s, lambda t: isinstance(t, Group) and t.delimiter == Delimiter.BRACE)
        body = self._expect_group(s, Delimiter.BRACE)

        params = self._comma_parts(params_group.children, "parameter", params_group.span)
        receiver = None
        if params and self._is_receiver(params[0]):
            receiver = params.pop(0)

        return MethodTemplate(
            name=name.value, attrs=attrs, vis=vis, qualifiers=qualifiers,
            generics=generics, receiver=receiver, params=params, ret=ret,
            where_clause=where, body=body, span=start.to(body.span),
        )

    @staticmethod
    def _is_receiver(param: Tokens) -> bool:
        """`self`, `mut self`, `&self`, `&'a mut self` or `self: Type`."""
        i = 0
        if i < len(param) and param[i].is_punct('&'):
            i += 1
            if i < len(param) and isinstance(param[i], Token) \
                    and param[i].kind == TokenKind.LIFETIME:
                i += 1
        if i < len(param) and param[i].is_ident("mut"):
            i += 1
        return i < len(param) and param[i].is_ident("self")
