"""Unit tests for unit classification and quantity rounding."""

import math

import pytest

from weekmenu.normalize.units import (
    classify_unit,
    collation_key,
    format_number,
    normalize_unit,
    normalized_ingredient_key,
    resolve_locale,
    round_to_step,
    to_human_quantity,
)

# =============================================================================
# Unit Classification Tests
# =============================================================================


class TestClassifyUnit:
    """Tests for classify_unit function."""

    @pytest.mark.parametrize("unit", ["g", "gram", "gr", "kg", "kilo", "Gr.", "  KG "])
    def test_weight(self, unit):
        assert classify_unit(unit) == "weight"

    @pytest.mark.parametrize("unit", ["ml", "milliliter", "l", "Liter", "L."])
    def test_volume(self, unit):
        assert classify_unit(unit) == "volume"

    @pytest.mark.parametrize("unit", ["", "stuk", "Stuks", "teentje", "blikjes", "uien"])
    def test_count(self, unit):
        assert classify_unit(unit) == "count"

    def test_missing_unit_is_count(self):
        """A bare number ("2 eieren") counts pieces."""
        assert classify_unit(None) == "count"

    @pytest.mark.parametrize("unit", ["snufje", "el", "tl", "bos", "cups"])
    def test_unknown_is_other(self, unit):
        assert classify_unit(unit) == "other"

    def test_normalize_unit_strips_periods(self):
        assert normalize_unit(" Gr. ") == "gr"


# =============================================================================
# Quantity Rounding Tests
# =============================================================================


class TestToHumanQuantity:
    """Tests for to_human_quantity function."""

    def test_weight_rounds_to_five_grams(self):
        quantity = to_human_quantity(333, "g")
        assert quantity.rounded_amount == 335
        assert quantity.category == "weight"
        assert quantity.is_approximate is False
        assert quantity.display_with_unit == "335 g"

    def test_weight_already_rounded(self):
        quantity = to_human_quantity(400, "g")
        assert quantity.rounded_amount == 400
        assert quantity.display_with_unit == "400 g"

    def test_kilograms_round_in_grams(self):
        quantity = to_human_quantity(1.2345, "kg")
        assert quantity.rounded_amount == pytest.approx(1.235)
        assert quantity.display_number == "1,235"

    def test_small_weight_is_not_clamped(self):
        """Only counts are lifted to one; a tiny weight may round to zero."""
        quantity = to_human_quantity(2, "g")
        assert quantity.rounded_amount == 0
        assert quantity.is_approximate is True

    def test_volume_rounds_to_ten_milliliters(self):
        quantity = to_human_quantity(333, "ml")
        assert quantity.rounded_amount == 330
        assert quantity.display_with_unit == "330 ml"

    def test_liters_round_in_milliliters(self):
        quantity = to_human_quantity(1.234, "l")
        assert quantity.rounded_amount == pytest.approx(1.23)
        assert quantity.display_number == "1,23"

    def test_count_snaps_to_integer(self):
        quantity = to_human_quantity(2.1, "")
        assert quantity.rounded_amount == 2
        assert quantity.display_with_unit == "2"

    def test_count_rounds_to_half(self):
        quantity = to_human_quantity(2.3, "stuk")
        assert quantity.rounded_amount == 2.5
        assert quantity.display_number == "2,5"
        assert quantity.is_approximate is False

    def test_count_clamps_small_positive_to_one(self):
        quantity = to_human_quantity(0.2, "stuk")
        assert quantity.rounded_amount == 1
        assert quantity.is_approximate is True
        assert quantity.display_with_approx == "≈ 1"
        assert quantity.display_with_unit == "≈ 1 stuk"

    def test_count_zero_stays_zero(self):
        quantity = to_human_quantity(0, "stuk")
        assert quantity.rounded_amount == 0
        assert quantity.is_approximate is False

    def test_other_rounds_to_one_decimal(self):
        quantity = to_human_quantity(1.26, "el")
        assert quantity.rounded_amount == pytest.approx(1.3)
        assert quantity.category == "other"
        assert quantity.display_with_unit == "1,3 el"

    def test_unit_is_trimmed_for_display(self):
        quantity = to_human_quantity(100, "  g ")
        assert quantity.unit == "g"
        assert quantity.display_with_unit == "100 g"

    @pytest.mark.parametrize("amount", [math.nan, math.inf, -math.inf, "abc", None])
    def test_invalid_amount_degrades_to_zero(self, amount):
        quantity = to_human_quantity(amount, "g")
        assert quantity.raw_amount == 0
        assert quantity.rounded_amount == 0
        assert quantity.is_approximate is False
        assert quantity.display_number == "0"

    def test_is_deterministic(self):
        assert to_human_quantity(123.4, "gram") == to_human_quantity(123.4, "gram")


class TestFormatting:
    """Tests for number formatting and identity helpers."""

    def test_format_number_groups_thousands(self):
        assert format_number(1234.5, "nl-NL", 1) == "1.234,5"

    def test_format_number_without_fraction(self):
        assert format_number(400.0, "nl-NL", 0) == "400"

    def test_round_to_step_half_up(self):
        assert round_to_step(2.5, 5) == 5
        assert round_to_step(7.5, 5) == 10

    def test_normalized_key_ignores_case_and_whitespace(self):
        assert normalized_ingredient_key(" Ui ", "Stuk") == normalized_ingredient_key("ui", "stuk ")
        assert normalized_ingredient_key("Ui", "stuk") == "ui::stuk"

    def test_collation_ignores_accents_and_case(self):
        names = ["Zout", "appel", "Éclair", "Banaan"]
        assert sorted(names, key=collation_key) == ["appel", "Banaan", "Éclair", "Zout"]


class TestLocaleFallback:
    """Tests for formatting with an unknown locale."""

    @pytest.mark.parametrize("locale", ["xx-YY", "", "not a locale"])
    def test_unknown_locale_uses_dutch(self, locale):
        quantity = to_human_quantity(1234.5, "el", locale=locale)

        assert quantity.display_with_unit == "1.234,5 el"

    def test_other_known_locale(self):
        assert format_number(1234.5, "en-US", 1) == "1,234.5"

    def test_resolve_locale_accepts_both_separators(self):
        assert resolve_locale("nl-NL") == resolve_locale("nl_NL")
        assert str(resolve_locale("xx-YY")) == "nl_NL"
