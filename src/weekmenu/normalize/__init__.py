"""Unit classification and quantity rounding."""

from weekmenu.normalize.units import (
    DEFAULT_LOCALE,
    HumanQuantity,
    UnitCategory,
    classify_unit,
    collation_key,
    format_number,
    normalize_unit,
    normalized_ingredient_key,
    resolve_locale,
    to_human_quantity,
)

__all__ = [
    "DEFAULT_LOCALE",
    "HumanQuantity",
    "UnitCategory",
    "classify_unit",
    "collation_key",
    "format_number",
    "normalize_unit",
    "normalized_ingredient_key",
    "resolve_locale",
    "to_human_quantity",
]
