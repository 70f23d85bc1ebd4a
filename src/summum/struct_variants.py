"""Record-form expansion: one concrete struct per variant.

A record-form definition shares one field template between its variants.
Each variant binds the runtime placeholders of ``variants<...>`` to concrete
types; the expander stamps out ``NameCase`` with those bindings applied and
makes that struct the variant's payload.
"""

from __future__ import annotations

import dataclasses
import logging

from summum.ast_nodes import DefinitionForm, Tokens, TypeDefinition, Variant
from summum.config import EmitConfig, NamingConfig
from summum.emitter import (
    ALLOW_DEAD_CODE,
    RustWriter,
    decl_generics,
    needs_dead_code_allow,
    type_generics,
    where_clause,
)
from summum.lexer import tokens_of
from summum.printer import render_inline
from summum.substitute import Environment, substitute

logger = logging.getLogger(__name__)


def record_name(defn: TypeDefinition, variant: Variant) -> str:
    return f"{defn.name}{variant.name}"


class StructVariantExpander(RustWriter):
    def __init__(self, naming: NamingConfig | None = None,
                 emit: EmitConfig | None = None) -> None:
        super().__init__()
        self._naming = naming or NamingConfig()
        self._emit_config = emit or EmitConfig()

    def bind(self, defn: TypeDefinition) -> TypeDefinition:
        """Return ``defn`` with each variant's payload set to its record type.

        Definitions of the other forms are returned unchanged.
        """
        if defn.form != DefinitionForm.RECORD:
            return defn
        args = type_generics(defn.generics)
        variants = [
            dataclasses.replace(v, payload=tokens_of(record_name(defn, v) + args))
            for v in defn.variants
        ]
        return dataclasses.replace(defn, variants=variants)

    def environment(self, defn: TypeDefinition, variant: Variant) -> Environment:
        args = type_generics(defn.generics)
        builtins = Environment(
            exact={
                "Self": tokens_of(defn.name + args),
                self._naming.self_type: tokens_of(record_name(defn, variant) + args),
            },
            keep_before_path=frozenset({"Self"}),
            qualify_before_path=frozenset({self._naming.self_type}),
        )
        # bound types may themselves mention `Self` or the record type
        exact: dict[str, Tokens] = {
            key: substitute(ty, builtins) for key, ty in variant.bindings.items()
        }
        exact.update(builtins.exact)
        return Environment(
            exact=exact,
            keep_before_path=frozenset({"Self"}),
            qualify_before_path=frozenset(exact),
        )

    def emit(self, defn: TypeDefinition) -> str:
        """Emit the record structs of a bound record-form definition."""
        self._out = []
        if defn.form != DefinitionForm.RECORD:
            return ""
        generics = decl_generics(defn.generics)
        where = where_clause(defn.generics.where_clause)
        vis = render_inline(defn.vis) + " " if defn.vis else ""

        for v in defn.variants:
            name = record_name(defn, v)
            logger.debug("emitting record %s", name)
            env = self.environment(defn, v)
            if needs_dead_code_allow(defn.attrs + v.attrs, self._emit_config):
                self._line(ALLOW_DEAD_CODE)
            self._attrs(defn.attrs)
            self._attrs(v.attrs)
            self._line(f"{vis}struct {name}{generics}{where} {{")
            self._indent += 1
            for f in defn.fields:
                self._attrs(f.attrs)
                field_vis = render_inline(f.vis) + " " if f.vis else ""
                ty = render_inline(substitute(f.ty, env))
                self._line(f"{field_vis}{f.name}: {ty},")
            self._indent -= 1
            self._line("}")
            self._line("")
        return self.text()
