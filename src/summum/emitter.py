"""Generate Rust source for one union definition.

Output is built line by line; user-supplied fragments (payload types,
attributes, generics) are rendered from their token trees.
"""

from __future__ import annotations

import logging

from summum.ast_nodes import DefinitionForm, Generics, Tokens, TypeDefinition, Variant
from summum.config import EmitConfig
from summum.errors import Diagnostic, Suggestion
from summum.naming import snake_ident
from summum.printer import INDENT, render, render_inline
from summum.tokens import Token, TokenKind

logger = logging.getLogger(__name__)


# ── Generics renderings ──────────────────────────────────────────


def _strip_default(tokens: Tokens) -> Tokens:
    """Drop `= default` from a generic parameter; angle-aware."""
    depth = 0
    for i, tree in enumerate(tokens):
        if tree.is_punct('<'):
            depth += 1
        elif tree.is_punct('>') and depth > 0:
            depth -= 1
        elif tree.is_punct('=') and depth == 0:
            return tokens[:i]
    return tokens


def decl_generics(generics: Generics) -> str:
    """Generics as written on the declaration, defaults included."""
    if not generics:
        return ""
    return "<" + ", ".join(render_inline(p.tokens) for p in generics.params) + ">"


def impl_generics(generics: Generics) -> str:
    """Generics for an `impl<...>` header: bounds kept, defaults dropped."""
    if not generics:
        return ""
    return "<" + ", ".join(render_inline(_strip_default(p.tokens))
                           for p in generics.params) + ">"


def type_generics(generics: Generics) -> str:
    """Generic arguments naming each parameter: `<'a, T, N>`."""
    if not generics:
        return ""
    return "<" + ", ".join(p.name for p in generics.params) + ">"


ALLOW_DEAD_CODE = "#[allow(dead_code)]"


def needs_dead_code_allow(attrs: list[Tokens], config: EmitConfig) -> bool:
    """True unless disabled or the user already wrote the same attribute."""
    return config.allow_dead_code and all(render_inline(a) != ALLOW_DEAD_CODE for a in attrs)


def where_clause(tokens: Tokens) -> str:
    if not tokens:
        return ""
    return " where " + render_inline(tokens)


def is_bare_type_param(payload: Tokens, generics: Generics) -> bool:
    """`T`, `&T`, `&'a T` or `&mut T` where `T` is a type parameter."""
    i = 0
    if i < len(payload) and payload[i].is_punct('&'):
        i += 1
        if i < len(payload) and isinstance(payload[i], Token) \
                and payload[i].kind == TokenKind.LIFETIME:
            i += 1
        if i < len(payload) and payload[i].is_ident("mut"):
            i += 1
    rest = payload[i:]
    return (len(rest) == 1 and rest[0].is_ident()
            and rest[0].value in generics.type_param_names())  # type: ignore[union-attr]


class RustWriter:
    """Line buffer shared by the emitters."""

    def __init__(self) -> None:
        self._out: list[str] = []
        self._indent = 0

    def _line(self, text: str) -> None:
        if text:
            self._out.append(INDENT * self._indent + text)
        else:
            self._out.append("")

    def _attrs(self, attrs: list[Tokens]) -> None:
        for attr in attrs:
            self._line(render_inline(attr))

    def _block(self, trees: Tokens) -> None:
        """Write user-written trees at the current indentation, keeping their line breaks."""
        text = render(trees, self._indent)
        if text:
            self._line(text)

    def text(self) -> str:
        return "\n".join(self._out) + "\n" if self._out else ""


class CoreTypeEmitter(RustWriter):
    """Emit the enum, conversions, introspection and accessors of one definition."""

    def __init__(self, defn: TypeDefinition, config: EmitConfig | None = None) -> None:
        super().__init__()
        self._defn = defn
        self._config = config or EmitConfig()
        self.diagnostics: list[Diagnostic] = []
        self._decl_g = decl_generics(defn.generics)
        self._impl_g = impl_generics(defn.generics)
        self._self_ty = defn.name + type_generics(defn.generics)
        self._where = where_clause(defn.generics.where_clause)

    # ── Public API ─────────────────────────────────────────────

    def emit(self) -> str:
        defn = self._defn
        logger.debug("emitting %s (%s form)", defn.name, defn.form.value)
        self._check_payload_collisions()

        self._emit_enum()
        for v in defn.variants:
            self._emit_from(v)
        for v in defn.variants:
            if is_bare_type_param(v.payload, defn.generics):
                logger.debug("no TryFrom for %s::%s: bare type parameter", defn.name, v.name)
                continue
            self._emit_try_from(v)
        self._emit_inherent_impl()
        return self.text()

    # ── Diagnostics ────────────────────────────────────────────

    def _check_payload_collisions(self) -> None:
        seen: dict[str, Variant] = {}
        for v in self._defn.variants:
            key = render_inline(v.payload)
            first = seen.get(key)
            if first is None:
                seen[key] = v
                continue
            diag = Diagnostic.warning(
                "W301",
                f"variants `{first.name}` and `{v.name}` of `{self._defn.name}`"
                f" share the payload type `{key}`",
                v.span, "same payload as an earlier variant",
            ).also(first.span, "first used here")
            diag.notes.append("the generated `From` implementations will conflict")
            diag.suggestions.append(Suggestion(
                "wrap one payload in a newtype", f"struct {v.name}({key});"))
            self.diagnostics.append(diag)

    # ── Enum ───────────────────────────────────────────────────

    def _emit_enum(self) -> None:
        defn = self._defn
        if needs_dead_code_allow(defn.attrs, self._config):
            self._line(ALLOW_DEAD_CODE)
        self._attrs(defn.attrs)
        vis = render_inline(defn.vis) + " " if defn.vis else ""
        self._line(f"{vis}enum {defn.name}{self._decl_g}{self._where} {{")
        self._indent += 1
        for v in defn.variants:
            # record-form variant attributes belong to the record struct
            if defn.form != DefinitionForm.RECORD:
                self._attrs(v.attrs)
            self._line(f"{v.name}({render_inline(v.payload)}),")
        self._indent -= 1
        self._line("}")
        self._line("")

    # ── Conversions ────────────────────────────────────────────

    def _emit_from(self, v: Variant) -> None:
        payload = render_inline(v.payload)
        self._line(f"impl{self._impl_g} From<{payload}> for {self._self_ty}{self._where} {{")
        self._indent += 1
        self._line(f"fn from(value: {payload}) -> Self {{")
        self._indent += 1
        self._line(f"Self::{v.name}(value)")
        self._indent -= 1
        self._line("}")
        self._indent -= 1
        self._line("}")
        self._line("")

    def _emit_try_from(self, v: Variant) -> None:
        payload = render_inline(v.payload)
        union = self._self_ty
        self._line(f"impl{self._impl_g} core::convert::TryFrom<{union}> for {payload}"
                   f"{self._where} {{")
        self._indent += 1
        self._line(f"type Error = {union};")
        self._line("")
        self._line("#[allow(unreachable_patterns)]")
        self._line(f"fn try_from(value: {union}) -> Result<Self, Self::Error> {{")
        self._indent += 1
        self._line("match value {")
        self._indent += 1
        self._line(f"{self._defn.name}::{v.name}(inner) => Ok(inner),")
        self._line("other => Err(other),")
        self._indent -= 1
        self._line("}")
        self._indent -= 1
        self._line("}")
        self._indent -= 1
        self._line("}")
        self._line("")

    # ── Inherent impl ──────────────────────────────────────────

    def _emit_inherent_impl(self) -> None:
        defn = self._defn
        self._line("#[allow(unreachable_patterns)]")
        self._line(f"impl{self._impl_g} {self._self_ty}{self._where} {{")
        self._indent += 1

        names = ", ".join(f'"{n}"' for n in defn.variant_names())
        self._line("pub const fn variants() -> &'static [&'static str] {")
        self._indent += 1
        self._line(f"&[{names}]")
        self._indent -= 1
        self._line("}")
        self._line("")

        self._line("pub fn variant_name(&self) -> &'static str {")
        self._indent += 1
        self._line("match self {")
        self._indent += 1
        for v in defn.variants:
            self._line(f'Self::{v.name}(_) => "{v.name}",')
        self._indent -= 1
        self._line("}")
        self._indent -= 1
        self._line("}")

        for v in defn.variants:
            self._line("")
            self._emit_accessors(v)

        self._indent -= 1
        self._line("}")
        self._line("")

    def _fn(self, signature: str, body: list[str]) -> None:
        self._line(f"pub fn {signature} {{")
        self._indent += 1
        for text in body:
            self._line(text)
        self._indent -= 1
        self._line("}")

    def _emit_accessors(self, v: Variant) -> None:
        payload = render_inline(v.payload)
        case = f"Self::{v.name}"
        is_x = snake_ident("is", v.name)
        borrow = snake_ident("borrow", v.name)
        borrow_mut = snake_ident("borrow_mut", v.name)
        into = snake_ident("into", v.name)

        def wrong(method: str) -> str:
            return (f'panic!("called `{method}` on a `{{}}` value, expected `{v.name}`",'
                    " actual)")

        self._fn(f"{is_x}(&self) -> bool", [f"matches!(self, {case}(_))"])
        self._line("")
        self._fn(f"{snake_ident('try_borrow', v.name)}(&self) -> Option<&{payload}>", [
            "match self {",
            f"{INDENT}{case}(inner) => Some(inner),",
            f"{INDENT}_ => None,",
            "}",
        ])
        self._line("")
        self._fn(f"{borrow}(&self) -> &{payload}", [
            "let actual = self.variant_name();",
            "match self {",
            f"{INDENT}{case}(inner) => inner,",
            f"{INDENT}_ => {wrong(borrow)},",
            "}",
        ])
        self._line("")
        self._fn(f"{snake_ident('try_borrow_mut', v.name)}(&mut self) -> Option<&mut {payload}>", [
            "match self {",
            f"{INDENT}{case}(inner) => Some(inner),",
            f"{INDENT}_ => None,",
            "}",
        ])
        self._line("")
        self._fn(f"{borrow_mut}(&mut self) -> &mut {payload}", [
            "let actual = self.variant_name();",
            "match self {",
            f"{INDENT}{case}(inner) => inner,",
            f"{INDENT}_ => {wrong(borrow_mut)},",
            "}",
        ])
        self._line("")
        self._fn(f"{snake_ident('try_into', v.name)}(self) -> Result<{payload}, Self>", [
            "match self {",
            f"{INDENT}{case}(inner) => Ok(inner),",
            f"{INDENT}other => Err(other),",
            "}",
        ])
        self._line("")
        self._fn(f"{into}(self) -> {payload}", [
            "let actual = self.variant_name();",
            "match self {",
            f"{INDENT}{case}(inner) => inner,",
            f"{INDENT}_ => {wrong(into)},",
            "}",
        ])


def emit_definition(defn: TypeDefinition,
                    config: EmitConfig | None = None) -> tuple[str, list[Diagnostic]]:
    """Convenience wrapper: emitted text plus the emitter's diagnostics."""
    emitter = CoreTypeEmitter(defn, config)
    return emitter.emit(), emitter.diagnostics
