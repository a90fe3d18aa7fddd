"""
Typed access to raw spreadsheet rows.

Headers differ between marketplace exports, so every field is read through an
alias tuple. Aliases are exact and case-sensitive; the first non-blank value
wins.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Tuple

Aliases = Tuple[str, ...]


class RawRow(Mapping[str, str]):
    """Immutable view over one CSV row. Missing and null cells read as ''."""

    __slots__ = ("_cells", "row_num")

    def __init__(self, cells: Mapping[str, Any], row_num: int = 0):
        self._cells = MappingProxyType(
            {str(k): "" if v is None else str(v) for k, v in cells.items()}
        )
        self.row_num = row_num

    def __getitem__(self, key: str) -> str:
        return self._cells[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def __repr__(self) -> str:
        return f"RawRow({dict(self._cells)!r}, row_num={self.row_num})"

    def has_column(self, aliases: Aliases) -> bool:
        return any(a in self._cells for a in aliases)

    def first(self, aliases: Aliases) -> Optional[str]:
        """First non-blank value among `aliases`, stripped, or None."""
        for alias in aliases:
            value = self._cells.get(alias, "").strip()
            if value:
                return value
        return None

    def to_dict(self) -> dict:
        return dict(self._cells)


@dataclass(frozen=True)
class ColumnAliases:
    """Header aliases for every field any fact type reads."""

    sku: Aliases = ("SKU",)
    platform_sku: Aliases = ("Platform SKU", "ASIN")
    platform: Aliases = ("Platform",)
    date: Aliases = ("Date", "Date Report")
    week: Aliases = ("Week",)
    month: Aliases = ("Month",)
    year: Aliases = ("Year",)
    units_sold: Aliases = ("Units Sold",)
    revenue: Aliases = ("Shipped Revenue", "Revenue")
    inventory_units: Aliases = ("Inventory Units",)
    rating: Aliases = ("Ratings", "Rating")
    review_count: Aliases = ("Review Count",)
    spend: Aliases = ("Spend",)
    product_name: Aliases = ("Product Name",)
    category: Aliases = ("Category",)
    launch_date: Aliases = ("Launch Date",)
    active: Aliases = ("Active",)
    seller_name: Aliases = ("Seller Name",)
    snapshot_date: Aliases = ("Snapshot Date (YYYY-MM-DD)", "Snapshot Date")
    location: Aliases = ("Location (Optional)", "Location")


DEFAULT_ALIASES = ColumnAliases()

# Ad exports report attributed sales under "Revenue" only
AD_PERFORMANCE_ALIASES = ColumnAliases(revenue=("Revenue",))
