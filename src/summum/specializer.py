"""Per-variant specialization of method-template blocks.

A template method is written once against the union and expanded for every
variant. In dispatch mode the variants share one method whose body matches on
``self``; in family mode (the method name ends in the variant suffix) every
variant gets a method of its own.
"""

from __future__ import annotations

import logging

from summum.ast_nodes import ImplBlock, MethodTemplate, Tokens, TypeDefinition, Variant
from summum.config import NamingConfig
from summum.directives import DirectiveContext, DirectiveError, resolve
from summum.emitter import RustWriter, where_clause
from summum.errors import Diagnostic
from summum.naming import to_snake_case
from summum.printer import render_inline
from summum.registry import TypeRegistry
from summum.source import Span
from summum.substitute import Environment, rename_with_suffix, substitute
from summum.tokens import ident

logger = logging.getLogger(__name__)


class SpecializationError(Exception):
    def __init__(self, code: str, message: str, span: Span) -> None:
        super().__init__(message)
        self.code = code
        self.span = span


def _compile_error(message: str) -> str:
    escaped = message.replace("\\", "\\\\").replace('"', '\\"')
    return f'compile_error!("{escaped}");'


class MethodSpecializer(RustWriter):
    """Expand every method-template block against the registry."""

    def __init__(self, registry: TypeRegistry, naming: NamingConfig | None = None) -> None:
        super().__init__()
        self._registry = registry
        self._naming = naming or NamingConfig()
        self.diagnostics: list[Diagnostic] = []

    def _diagnostic(self, code: str, message: str, span: Span) -> None:
        self.diagnostics.append(Diagnostic.error(code, message, span))

    # ── Public API ─────────────────────────────────────────────

    def emit(self, block: ImplBlock) -> str:
        """Emit one method-template block; unresolvable targets become a compile error."""
        self._out = []
        self._indent = 0
        if not self._registry.frozen:
            raise RuntimeError("method templates are resolved against a frozen registry")

        defn = self._registry.lookup(block.target)
        if defn is None:
            message = f"can't find definition for type `{block.target}` in summum block"
            self._diagnostic("E300", message, block.span)
            self._line(_compile_error(message))
            self._line("")
            return self.text()

        logger.debug("specializing impl block for %s (%d items)", defn.name, len(block.items))
        self._attrs(block.attrs)
        self._line(f"impl{render_inline(block.generics)} {render_inline(block.self_ty)}"
                   f"{where_clause(block.where_clause)} {{")
        self._indent += 1
        first = True
        for item in block.items:
            if not first:
                self._line("")
            first = False
            if isinstance(item, MethodTemplate):
                self._emit_method(defn, item)
            else:
                self._block(item.tokens)
        self._indent -= 1
        self._line("}")
        self._line("")
        return self.text()

    # ── Environments ───────────────────────────────────────────

    def _is_family(self, method: MethodTemplate) -> bool:
        suffix = self._naming.variant_suffix
        return method.name == suffix or method.name.endswith("_" + suffix)

    def _body_env(self, variant: Variant) -> Environment:
        naming = self._naming
        return Environment(
            exact={
                "self": [ident(naming.receiver)],
                naming.self_type: variant.payload,
            },
            suffix=naming.variant_suffix,
            suffix_value=to_snake_case(variant.name),
            keep_before_path=frozenset({"self"}),
            qualify_before_path=frozenset({naming.self_type}),
        )

    def _signature_env(self, variant: Variant) -> Environment:
        return Environment(
            exact={self._naming.self_type: variant.payload},
            suffix=self._naming.variant_suffix,
            suffix_value=to_snake_case(variant.name),
            qualify_before_path=frozenset({self._naming.self_type}),
        )

    def _specialize_body(self, defn: TypeDefinition, method: MethodTemplate,
                         variant: Variant, emitted_name: str) -> Tokens:
        ctx = DirectiveContext(
            variant=variant.name,
            declared=frozenset(defn.variant_names()),
            method=emitted_name,
            naming=self._naming,
        )
        resolved = resolve(method.body.children, ctx)
        return substitute(resolved, self._body_env(variant))

    # ── Methods ────────────────────────────────────────────────

    def _emit_method(self, defn: TypeDefinition, method: MethodTemplate) -> None:
        try:
            if self._is_family(method):
                self._emit_family(defn, method)
            else:
                self._emit_dispatch(defn, method)
        except DirectiveError as e:
            self._diagnostic("E303", str(e), e.span)
            self._line(_compile_error(f"in `{method.name}`: {e}"))
        except SpecializationError as e:
            self._diagnostic(e.code, str(e), e.span)
            self._line(_compile_error(str(e)))

    def _signature(self, method: MethodTemplate, name: str,
                   env: Environment | None = None) -> str:
        def sub(tokens: Tokens) -> str:
            return render_inline(substitute(tokens, env) if env else tokens)

        params = [render_inline(method.receiver)] if method.receiver else []
        params.extend(sub(p) for p in method.params)
        head = "".join(render_inline(part) + " "
                       for part in (method.vis, method.qualifiers) if part)
        ret = f" -> {sub(method.ret)}" if method.ret else ""
        return (f"{head}fn {name}{render_inline(method.generics)}({', '.join(params)})"
                f"{ret}{where_clause(method.where_clause)} {{")

    def _write_arm(self, pattern: str, body: Tokens) -> None:
        self._line(f"{pattern} => {{")
        self._indent += 1
        self._block(body)
        self._indent -= 1
        self._line("}")

    def _emit_dispatch(self, defn: TypeDefinition, method: MethodTemplate) -> None:
        if method.receiver is None:
            raise SpecializationError(
                "E302",
                f"method `{method.name}` of `{defn.name}` has no receiver to dispatch on;"
                f" take `self` or name it with the `_{self._naming.variant_suffix}` suffix",
                method.span,
            )
        bodies = [(v, self._specialize_body(defn, method, v, method.name))
                  for v in defn.variants]
        logger.debug("dispatch %s::%s over %d variants", defn.name, method.name, len(bodies))

        self._attrs(method.attrs)
        self._line(self._signature(method, method.name))
        self._indent += 1
        self._line("match self {")
        self._indent += 1
        for v, body in bodies:
            self._write_arm(f"Self::{v.name}({self._naming.receiver})", body)
        self._indent -= 1
        self._line("}")
        self._indent -= 1
        self._line("}")

    def _emit_family(self, defn: TypeDefinition, method: MethodTemplate) -> None:
        suffix = self._naming.variant_suffix
        specialized = []
        for v in defn.variants:
            name = rename_with_suffix(method.name, suffix, to_snake_case(v.name))
            assert name is not None
            specialized.append((v, name, self._specialize_body(defn, method, v, name)))
        logger.debug("family %s::%s -> %s", defn.name, method.name,
                     ", ".join(name for _, name, _ in specialized))

        for i, (v, name, body) in enumerate(specialized):
            if i:
                self._line("")
            if method.receiver is not None:
                self._line("#[allow(unreachable_patterns)]")
            self._attrs(method.attrs)
            self._line(self._signature(method, name, self._signature_env(v)))
            self._indent += 1
            if method.receiver is None:
                self._block(body)
            else:
                self._line("match self {")
                self._indent += 1
                self._write_arm(f"Self::{v.name}({self._naming.receiver})", body)
                self._line(
                    "other => panic!(\"called the wrong variant's method:"
                    f" `{defn.name}::{name}` expects `{v.name}`, found `{{}}`\","
                    " other.variant_name()),"
                )
                self._indent -= 1
                self._line("}")
            self._indent -= 1
            self._line("}")


def specialize_block(block: ImplBlock, registry: TypeRegistry,
                     naming: NamingConfig | None = None) -> tuple[str, list[Diagnostic]]:
    specializer = MethodSpecializer(registry, naming)
    return specializer.emit(block), specializer.diagnostics

