# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for rendering Python values as Nix literals."""

from __future__ import annotations

from pathlib import Path

import pytest

from nixcompose.nixexpr import attr_name, attrset, quote_string, to_nix


def test_scalars_render_as_nix_literals() -> None:
    assert to_nix(None) == "null"
    assert to_nix(True) == "true"
    assert to_nix(False) == "false"
    assert to_nix(42) == "42"
    assert to_nix(Path("/nix/store")) == '"/nix/store"'


def test_strings_escape_interpolation_and_quotes() -> None:
    assert quote_string('say "hi" ${x}\n') == '"say \\"hi\\" \\${x}\\n"'


def test_lists_parenthesise_negative_numbers() -> None:
    assert to_nix(["x86_64-linux", -1, 2]) == '[ "x86_64-linux" (-1) 2 ]'
    assert to_nix([]) == "[ ]"


def test_attr_names_quote_keywords_and_odd_names() -> None:
    assert attr_name("allowUnfree") == "allowUnfree"
    assert attr_name("__allowFileset") == "__allowFileset"
    assert attr_name("in") == '"in"'
    assert attr_name("x86_64-linux") == "x86_64-linux"
    assert attr_name("foo.bar") == '"foo.bar"'


def test_attrset_keeps_insertion_order() -> None:
    rendered = attrset({"checkMeta": False, "attrNamesOnly": True, "systems": None})
    assert rendered == "{ checkMeta = false; attrNamesOnly = true; systems = null; }"
    assert attrset({}) == "{ }"
    assert attrset({"config": {"allowUnfree": True}}) == "{ config = { allowUnfree = true; }; }"


def test_unsupported_values_raise_type_error() -> None:
    with pytest.raises(TypeError):
        to_nix(object())


def test_floats_render_with_fractional_part() -> None:
    assert to_nix(1.5) == "1.5"
    assert to_nix(1e100) == "1.0e+100"
    assert to_nix(1e-05) == "1.0e-05"
    assert to_nix(2.5e-07) == "2.5e-07"
    assert to_nix([-1e100]) == "[ (-1.0e+100) ]"


@pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
def test_non_finite_floats_raise_value_error(value: float) -> None:
    with pytest.raises(ValueError):
        to_nix(value)
