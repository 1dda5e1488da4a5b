# =============================================================================
# core/formatting.py  -  Status, unit and targeting mappers
# =============================================================================
#
# Pure lookup and conversion helpers shared by the Meta normalizers and the
# Search Ads analysis.  No I/O, no SDK imports.
#
# MONEY:
#   Meta reports every budget, spend and balance in minor currency units
#   (cents).  format_currency() is the only place that divides by 100, so
#   nothing leaves this server still in cents.
# =============================================================================

from typing import Any, Iterable, Optional

from core.models import TargetingLocations, TargetingSummary, compact_dict


_ACCOUNT_STATUS_LABELS: dict[int, str] = {
    1: "Active",
    2: "Disabled",
    3: "Unsettled",
    7: "Pending_risk_review",
    8: "Pending_settlement",
    9: "In_grace_period",
    100: "Pending_closure",
    101: "Closed",
    201: "Any_active",
    202: "Any_closed",
}

_GENDER_LABELS: dict[int, str] = {1: "male", 2: "female"}


def get_account_status_text(status_code: Any) -> str:
    """Map a Meta ``account_status`` code to its label.

    Unknown codes render as ``"Unknown (<code>)"``.
    """
    label = None
    if isinstance(status_code, int) and not isinstance(status_code, bool):
        label = _ACCOUNT_STATUS_LABELS.get(status_code)
    elif isinstance(status_code, str) and status_code.isdigit():
        label = _ACCOUNT_STATUS_LABELS.get(int(status_code))
    return label or f"Unknown ({status_code})"


def map_gender(code: Any) -> Any:
    """1 -> "male", 2 -> "female"; anything else is passed through."""
    try:
        return _GENDER_LABELS.get(code, code)
    except TypeError:  # unhashable
        return code


def to_number(value: Any) -> Optional[float]:
    """Coerce an upstream numeric field to float.

    Accepts numbers, numeric strings and Apple ``Money`` objects
    (``{"amount": "1.50", "currency": "USD"}``).  Returns None for anything
    that isn't a number so callers can exclude it from aggregates.
    """
    if isinstance(value, dict):
        value = value.get("amount")
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return number


def format_currency(amount: Any, currency: Optional[str] = "") -> str:
    """Format a minor-unit amount: ``12345, "USD"`` -> ``"123.45 USD"``.

    Falsy and non-numeric amounts render as ``"0"``.
    """
    number = to_number(amount)
    if not number:
        return "0"
    formatted = f"{number / 100:.2f}"
    if currency:
        return f"{formatted} {currency}"
    return formatted


def format_optional_currency(amount: Any, currency: Optional[str] = "") -> Optional[str]:
    """Like format_currency, but absent and zero amounts stay None."""
    return format_currency(amount, currency) if to_number(amount) else None


def safe_sum(values: Iterable[Any]) -> float:
    numbers = [n for n in (to_number(v) for v in values) if n is not None]
    return sum(numbers) if numbers else 0


def safe_average(values: Iterable[Any]) -> float:
    """Mean of the numeric values; 0 for an empty (or all non-numeric) input."""
    numbers = [n for n in (to_number(v) for v in values) if n is not None]
    if not numbers:
        return 0
    return sum(numbers) / len(numbers)


def _names(items: Optional[list]) -> list:
    return [(item.get("name") or item.get("id")) if isinstance(item, dict) else item for item in items or []]


def summarize_targeting(targeting: Optional[dict]) -> dict:
    """Reduce a Meta targeting spec to the fields a reader cares about.

    Returns an empty dict for missing targeting.  Keys are only present when
    the spec sets them.
    """
    if not targeting:
        return {}

    summary = TargetingSummary()

    if targeting.get("age_min"):
        summary.age_range = f"{targeting['age_min']}-{targeting.get('age_max') or '65+'}"

    if targeting.get("genders"):
        summary.genders = [map_gender(g) for g in targeting["genders"]]

    geo = targeting.get("geo_locations")
    if geo:
        summary.locations = TargetingLocations(
            countries=geo.get("countries") or None,
            cities=[c.get("name") for c in geo["cities"]] if geo.get("cities") else None,
            regions=[r.get("name") for r in geo["regions"]] if geo.get("regions") else None,
        )

    if targeting.get("interests"):
        summary.interests = _names(targeting["interests"])
    if targeting.get("behaviors"):
        summary.behaviors = _names(targeting["behaviors"])

    return compact_dict(summary)
