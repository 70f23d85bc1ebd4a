"""Tests for directive resolution and token substitution."""

from __future__ import annotations

import pytest

from helpers import gen, gen_fails, no_banner
from summum.config import NamingConfig, SummumConfig
from summum.directives import DirectiveContext, DirectiveError, resolve
from summum.lexer import tokens_of
from summum.printer import render_inline
from summum.substitute import Environment, rename_with_suffix, substitute
from summum.tokens import ident

NUM3 = "type Num = f64 | i64 | u8;\n"


def _ctx(variant: str, method: str = "m") -> DirectiveContext:
    return DirectiveContext(variant, frozenset({"A", "B", "C"}), method, NamingConfig())


def _resolve(text: str, variant: str) -> str:
    return render_inline(resolve(tokens_of(text), _ctx(variant)))


class TestRestrict:
    def test_listed_variant_keeps_body(self):
        assert _resolve("summum_restrict!(A, B); x + 1", "A") == "x + 1"

    def test_unlisted_variant_panics(self):
        out = _resolve("summum_restrict!(A); x + 1", "C")
        assert out == 'panic!("internal error: unreachable variant `C` in `m`")'

    def test_trailing_comma_and_no_semicolon(self):
        assert _resolve("summum_restrict!(A, B,) x", "B") == "x"

    def test_only_rest_of_enclosing_group_replaced(self):
        out = _resolve("let y = 2; if y > 1 { summum_restrict!(A); y } else { 0 }", "B")
        assert out == (
            'let y = 2; if y > 1 { panic!("internal error: unreachable variant `B` in `m`") }'
            " else { 0 }"
        )


class TestExclude:
    def test_excluded_variant_panics(self):
        out = _resolve("summum_exclude!(C); x", "C")
        assert out.startswith("panic!(")

    def test_other_variants_keep_body(self):
        assert _resolve("summum_exclude!(C); x", "A") == "x"


class TestVariantName:
    def test_replaced_by_string_literal(self):
        assert _resolve("println!(\"{}\", summum_variant_name!())", "B") == 'println!("{}", "B")'

    def test_at_any_depth(self):
        assert _resolve("{ [summum_variant_name!()] }", "C") == '{ ["C"] }'


class TestDirectiveErrors:
    def test_unknown_variant(self):
        with pytest.raises(DirectiveError, match="unknown variant `Z`"):
            resolve(tokens_of("summum_restrict!(Z);"), _ctx("A"))

    def test_non_identifier_argument(self):
        with pytest.raises(DirectiveError, match="expects variant names"):
            resolve(tokens_of("summum_exclude!(1);"), _ctx("A"))

    def test_generated_method_replaced(self):
        code, diags = gen_fails(
            NUM3 + "impl Num {\n    fn f(&self) { summum_restrict!(Nope); }\n}\n", "E303")
        assert "compile_error!(" in code
        assert "fn f(" not in code
        assert "`Nope`" in diags[0].message


class TestDirectivesInMethods:
    def test_dispatch_restrict(self):
        code = gen(NUM3 + (
            "impl Num {\n"
            "    fn as_float(&self) -> f64 {\n"
            "        summum_restrict!(F64);\n"
            "        *self\n"
            "    }\n"
            "}\n"
        ), no_banner())
        assert "            Self::F64(_summum_self) => {\n                *_summum_self\n" in code
        assert (
            'panic!("internal error: unreachable variant `I64` in `as_float`")'
        ) in code
        assert (
            'panic!("internal error: unreachable variant `U8` in `as_float`")'
        ) in code

    def test_family_directive_names_emitted_method(self):
        code = gen(NUM3 + (
            "impl Num {\n"
            "    fn signed_inner_var(&self) -> bool {\n"
            "        summum_exclude!(U8);\n"
            "        true\n"
            "    }\n"
            "}\n"
        ))
        assert 'unreachable variant `U8` in `signed_u8`' in code
        assert "fn signed_f64(&self) -> bool {" in code

    def test_variant_name_in_family(self):
        code = gen(NUM3 + "impl Num {\n    fn name_inner_var() -> &'static str { summum_variant_name!() }\n}\n")
        assert 'fn name_i64() -> &\'static str {\n        "I64"\n    }' in code

    def test_custom_directive_names(self):
        config = SummumConfig()
        config.naming.variant_name = "which"
        code = gen(NUM3 + "impl Num {\n    fn n(&self) -> &'static str { which!() }\n}\n", config)
        assert '"F64"' in code


class TestSubstitute:
    def test_exact_and_suffix(self):
        env = Environment(exact={"InnerT": tokens_of("u8")}, suffix="inner_var",
                          suffix_value="byte")
        out = substitute(tokens_of("InnerT::from(x.into_inner_var())"), env)
        assert render_inline(out) == "u8::from(x.into_byte())"

    def test_keep_before_path(self):
        env = Environment(exact={"self": [ident("_me")]}, keep_before_path=frozenset({"self"}))
        out = substitute(tokens_of("self::f(self)"), env)
        assert render_inline(out) == "self::f(_me)"

    def test_qualify_multi_token(self):
        env = Environment(exact={"InnerT": tokens_of("Vec<u8>")},
                          qualify_before_path=frozenset({"InnerT"}))
        out = substitute(tokens_of("let v: InnerT = InnerT::new();"), env)
        assert render_inline(out) == "let v: Vec<u8> = <Vec<u8>>::new();"

    def test_leading_whitespace_inherited(self):
        env = Environment(exact={"T": tokens_of("u8")})
        out = substitute(tokens_of("a\nT"), env)
        assert out[1].ws == "\n"

    def test_rename_with_suffix(self):
        assert rename_with_suffix("into_inner_var", "inner_var", "f64") == "into_f64"
        assert rename_with_suffix("inner_var", "inner_var", "move") == "r#move"
        assert rename_with_suffix("winner_var", "inner_var", "x") is None
        assert rename_with_suffix("other", "inner_var", "x") is None
