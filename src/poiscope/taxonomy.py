"""Category taxonomy: category label → OSM tag values, plus display colours."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

OTHER_LABEL = "Other"
OTHER_COLOR = "#888888"


@dataclass(frozen=True, eq=False)
class CategoryTaxonomy:
    """Ordered, immutable mapping of categories to the tag values they contain.

    A tag value listed under several categories belongs to the first one in
    declaration order.
    """

    tag_key: str
    categories: Mapping[str, frozenset[str]]
    colors: Mapping[str, str]

    @classmethod
    def from_lists(
        cls,
        categories: Mapping[str, Iterable[str]],
        colors: Mapping[str, str] | None = None,
        tag_key: str = "amenity",
    ) -> "CategoryTaxonomy":
        """Build a taxonomy from plain lists, freezing every container.

        Args:
            categories: Category label → tag values, in display order.
            colors: Category label → hex colour. Missing labels fall back to grey.
            tag_key: OSM tag whose value is classified ("amenity").

        Returns:
            A CategoryTaxonomy that cannot be mutated after construction.
        """
        frozen = {label: frozenset(values) for label, values in categories.items()}
        return cls(
            tag_key=tag_key,
            categories=MappingProxyType(frozen),
            colors=MappingProxyType(dict(colors or {})),
        )

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(self.categories)

    def category_for(self, tag_value: str | None) -> str | None:
        if tag_value is None:
            return None
        for label, values in self.categories.items():
            if tag_value in values:
                return label
        return None

    def color_for(self, label: str | None) -> str:
        if label is None:
            label = OTHER_LABEL
        return self.colors.get(label) or self.colors.get(OTHER_LABEL) or OTHER_COLOR


DEFAULT_TAXONOMY = CategoryTaxonomy.from_lists(
    {
        "🚗 Transport": ["charging_station", "bicycle_rental", "bus_station", "parking", "taxi"],
        "🍔 Food": ["restaurant", "fast_food", "bakery", "butcher", "ice_cream"],
        "☕ Café / Bars": ["cafe", "pub", "bar"],
        "🛍️ Shopping / Retail": [
            "supermarket",
            "convenience",
            "marketplace",
            "clothes",
            "electronics",
            "hairdresser",
            "laundry",
        ],
        "🏫 Education": ["school", "kindergarten", "university", "library"],
        "🏥 Health / Medical": ["clinic", "hospital", "pharmacy", "dentist"],
        "💰 Financial Services": ["bank", "atm", "bureau_de_change"],
        "🏛️ Public Services": ["police", "fire_station", "post_office", "office"],
        "🕍 Religious": ["place_of_worship", "church", "mosque", "temple"],
    },
    colors={
        "🚗 Transport": "#1f77b4",
        "🍔 Food": "#d62728",
        "☕ Café / Bars": "#ff9896",
        "🛍️ Shopping / Retail": "#2ca02c",
        "🏫 Education": "#9467bd",
        "🏥 Health / Medical": "#17becf",
        "💰 Financial Services": "#bcbd22",
        "🏛️ Public Services": "#7f7f7f",
        "🕍 Religious": "#d222a6",
        OTHER_LABEL: OTHER_COLOR,
    },
)
