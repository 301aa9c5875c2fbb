"""Unit classification and human-friendly quantity rounding."""

import math
import unicodedata
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from babel import Locale, UnknownLocaleError
from babel.numbers import format_decimal

UnitCategory = Literal["weight", "volume", "count", "other"]

DEFAULT_LOCALE = "nl-NL"

# =============================================================================
# Unit Tables
# =============================================================================

WEIGHT_UNITS: frozenset[str] = frozenset({"g", "gram", "gr", "kg", "kilo"})

VOLUME_UNITS: frozenset[str] = frozenset({"ml", "milliliter", "l", "liter"})

# Empty string counts as a bare number ("2 eieren")
COUNT_UNITS: frozenset[str] = frozenset(
    {
        "",
        "stuk",
        "stuks",
        "teen",
        "teentje",
        "teentjes",
        "blad",
        "bladen",
        "blik",
        "blikje",
        "blikjes",
        "ui",
        "uien",
    }
)

# Large units that are rounded in their small base unit (kg -> g, l -> ml)
LARGE_UNIT_MULTIPLIERS: dict[str, float] = {
    "kg": 1000.0,
    "kilo": 1000.0,
    "l": 1000.0,
    "liter": 1000.0,
}

WEIGHT_STEP = 5.0
VOLUME_STEP = 10.0
COUNT_SNAP_TOLERANCE = 0.15
COUNT_STEP = 0.5
APPROXIMATE_THRESHOLD = 0.10


@dataclass(frozen=True)
class HumanQuantity:
    """A rounded, display-ready quantity. Never persisted."""

    raw_amount: float
    rounded_amount: float
    unit: str
    category: UnitCategory
    is_approximate: bool
    display_number: str
    display_with_approx: str
    display_with_unit: str


# =============================================================================
# Classification
# =============================================================================


def normalize_unit(unit: str | None) -> str:
    """Trim, lowercase and strip periods ("Gr." -> "gr")."""
    return (unit or "").strip().lower().replace(".", "")


def classify_unit(unit: str | None) -> UnitCategory:
    """Map a free-text unit onto weight, volume, count or other."""
    normalized = normalize_unit(unit)
    if normalized in WEIGHT_UNITS:
        return "weight"
    if normalized in VOLUME_UNITS:
        return "volume"
    if normalized in COUNT_UNITS:
        return "count"
    return "other"


def max_fraction_digits(category: UnitCategory, normalized_unit: str) -> int:
    """Number of fractional digits shown for a unit."""
    if category == "weight":
        return 3 if normalized_unit in ("kg", "kilo") else 0
    if category == "volume":
        return 2 if normalized_unit in ("l", "liter") else 0
    return 1


# =============================================================================
# Rounding
# =============================================================================


def round_half_up(value: float) -> float:
    """Round .5 towards positive infinity."""
    return float(math.floor(value + 0.5))


def round_to_step(value: float, step: float) -> float:
    """Round to the nearest multiple of step."""
    if step <= 0:
        return value
    return round_half_up(value / step) * step


def _safe_amount(amount: object) -> float:
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        return 0.0
    amount = float(amount)
    return amount if math.isfinite(amount) else 0.0


def _round_for_category(amount: float, category: UnitCategory, normalized_unit: str) -> float:
    if category in ("weight", "volume"):
        multiplier = LARGE_UNIT_MULTIPLIERS.get(normalized_unit, 1.0)
        step = WEIGHT_STEP if category == "weight" else VOLUME_STEP
        return round_to_step(amount * multiplier, step) / multiplier

    if category == "count":
        nearest = round_half_up(amount)
        if abs(amount - nearest) <= COUNT_SNAP_TOLERANCE:
            rounded = nearest
        else:
            rounded = round_to_step(amount, COUNT_STEP)
        # Something was needed, so never show less than one
        if amount > 0 and rounded < 1:
            rounded = 1.0
        return rounded

    return round_half_up(amount * 10) / 10


def parse_locale(locale: str | None) -> Locale:
    """Parse a BCP 47 ("nl-NL") or POSIX ("nl_NL") locale tag."""
    return Locale.parse((locale or "").replace("-", "_"))


@lru_cache(maxsize=32)
def resolve_locale(locale: str | None) -> Locale:
    """Locale to format with. Unknown or malformed tags fall back to nl-NL."""
    try:
        return parse_locale(locale)
    except (UnknownLocaleError, ValueError, TypeError):
        return parse_locale(DEFAULT_LOCALE)


def format_number(value: float, locale: str = DEFAULT_LOCALE, fraction_digits: int = 1) -> str:
    """Format with grouping and at most `fraction_digits` decimals."""
    pattern = "#,##0"
    if fraction_digits > 0:
        pattern += "." + "#" * fraction_digits
    return format_decimal(value, format=pattern, locale=resolve_locale(locale))


def to_human_quantity(
    amount: float,
    unit: str | None,
    locale: str = DEFAULT_LOCALE,
) -> HumanQuantity:
    """
    Round a raw amount into a quantity a person would write on a list.

    Weight rounds to 5 g and volume to 10 ml (kg and l are rounded in g/ml
    and converted back). Counts snap to whole numbers when close, otherwise
    to halves, and never drop below one. Everything else keeps one decimal.

    Never raises: invalid amounts degrade to 0.
    """
    safe_amount = _safe_amount(amount)
    trimmed_unit = (unit or "").strip()
    normalized = normalize_unit(unit)
    category = classify_unit(unit)

    rounded = round(_round_for_category(safe_amount, category, normalized), 6)

    is_approximate = (
        safe_amount > 0 and abs(rounded - safe_amount) / safe_amount > APPROXIMATE_THRESHOLD
    )

    display_number = format_number(rounded, locale, max_fraction_digits(category, normalized))
    display_with_approx = f"≈ {display_number}" if is_approximate else display_number
    if trimmed_unit:
        display_with_unit = f"{display_with_approx} {trimmed_unit}"
    else:
        display_with_unit = display_with_approx

    return HumanQuantity(
        raw_amount=safe_amount,
        rounded_amount=rounded,
        unit=trimmed_unit,
        category=category,
        is_approximate=is_approximate,
        display_number=display_number,
        display_with_approx=display_with_approx,
        display_with_unit=display_with_unit,
    )


# =============================================================================
# Ingredient Identity
# =============================================================================


def normalized_ingredient_key(name: str, unit: str) -> str:
    """Identity of an ingredient line: name and unit, case-insensitive."""
    return f"{(name or '').strip().lower()}::{(unit or '').strip().lower()}"


def collation_key(text: str) -> tuple[str, str]:
    """
    Sort key for display names.

    Accents and case are ignored at the first level ("Éclair" sorts with
    "eclair"); the original text breaks ties so ordering stays stable.
    """
    decomposed = unicodedata.normalize("NFKD", text or "")
    folded = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return folded.casefold(), text or ""
