"""Gas size vocabularies and the canonical form used for stock line lookups.

Customers and older records name cylinder sizes either qualitatively
(Small/Medium/Large) or by weight (2.3kg/5kg/12.5kg). Inside the engine a
size is always a GasSize; the other vocabulary only appears at the edges.
"""

from enum import Enum
from typing import Iterable, Optional, Protocol, TypeVar


class GasSize(str, Enum):
    SMALL = "Small"
    MEDIUM = "Medium"
    LARGE = "Large"

    @property
    def weight_label(self) -> str:
        return _WEIGHT_LABELS[self]


_WEIGHT_LABELS = {
    GasSize.SMALL: "2.3kg",
    GasSize.MEDIUM: "5kg",
    GasSize.LARGE: "12.5kg",
}

_ALIASES = {
    "small": GasSize.SMALL,
    "2.3kg": GasSize.SMALL,
    "2.3": GasSize.SMALL,
    "medium": GasSize.MEDIUM,
    "5kg": GasSize.MEDIUM,
    "5": GasSize.MEDIUM,
    "large": GasSize.LARGE,
    "12.5kg": GasSize.LARGE,
    "12.5": GasSize.LARGE,
}


def canonicalize_gas_type(label: object) -> Optional[GasSize]:
    """Maps any known size label (any case, optional spaces) to its GasSize, or None."""
    if label is None:
        return None
    if isinstance(label, GasSize):
        return label
    normalized = str(label).strip().lower().replace(" ", "")
    return _ALIASES.get(normalized)


class _Line(Protocol):
    brand_name: str
    gas_type: str


LineT = TypeVar("LineT", bound=_Line)


def match_stock_line(lines: Iterable[LineT], brand_name: str, gas_type: str) -> Optional[LineT]:
    """
    Finds the line for a brand and gas type, trying in order:
    exact match, canonical size match, case-insensitive match.
    """
    lines = list(lines)

    for line in lines:
        if line.brand_name == brand_name and line.gas_type == gas_type:
            return line

    canonical = canonicalize_gas_type(gas_type)
    if canonical is not None:
        for line in lines:
            if line.brand_name == brand_name and canonicalize_gas_type(line.gas_type) == canonical:
                return line

    wanted_brand = (brand_name or "").lower()
    wanted_type = (canonical.value if canonical else str(gas_type or "")).lower()
    for line in lines:
        if line.brand_name.lower() == wanted_brand and line.gas_type.lower() == wanted_type:
            return line

    return None
