"""Tests for gas size canonicalization and stock line matching."""

from dataclasses import dataclass

import pytest

from gasledger.stock_domain.domain.entities.gas_type import GasSize, canonicalize_gas_type, match_stock_line


@dataclass
class _Line:
    brand_name: str
    gas_type: str


@pytest.mark.parametrize(
    "label, expected",
    [
        ("Small", GasSize.SMALL),
        ("small", GasSize.SMALL),
        ("2.3kg", GasSize.SMALL),
        ("2.3 KG", GasSize.SMALL),
        ("2.3", GasSize.SMALL),
        ("Medium", GasSize.MEDIUM),
        ("5kg", GasSize.MEDIUM),
        ("5", GasSize.MEDIUM),
        ("LARGE", GasSize.LARGE),
        ("12.5kg", GasSize.LARGE),
        (GasSize.LARGE, GasSize.LARGE),
        ("Jumbo", None),
        (None, None),
    ],
)
def test_canonicalize_gas_type(label, expected) -> None:
    assert canonicalize_gas_type(label) == expected


def test_weight_labels() -> None:
    assert [size.weight_label for size in GasSize] == ["2.3kg", "5kg", "12.5kg"]


def test_exact_match_wins_over_canonical_match() -> None:
    lines = [_Line("Litro", "Medium"), _Line("Litro", "5kg")]
    assert match_stock_line(lines, "Litro", "5kg") is lines[1]


def test_weight_vocabulary_finds_qualitative_line() -> None:
    lines = [_Line("Litro", "Small"), _Line("Litro", "Medium")]
    assert match_stock_line(lines, "Litro", "5kg") is lines[1]


def test_qualitative_vocabulary_finds_weight_line() -> None:
    lines = [_Line("Laugfs", "2.3kg"), _Line("Laugfs", "12.5kg")]
    assert match_stock_line(lines, "Laugfs", "Large") is lines[1]


def test_case_insensitive_fallback_for_brand() -> None:
    lines = [_Line("Laugfs", "Small")]
    assert match_stock_line(lines, "laugfs", "small") is lines[0]


def test_brand_must_match() -> None:
    lines = [_Line("Laugfs", "Small")]
    assert match_stock_line(lines, "Litro", "Small") is None
