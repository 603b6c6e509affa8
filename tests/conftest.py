import pytest

from poiscope.taxonomy import CategoryTaxonomy


@pytest.fixture
def taxonomy() -> CategoryTaxonomy:
    return CategoryTaxonomy.from_lists(
        {
            "Food": ["restaurant", "fast_food"],
            "Money": ["bank", "atm"],
            "Cafe": ["cafe", "restaurant"],
        },
        colors={"Food": "#d62728", "Money": "#bcbd22", "Other": "#888888"},
    )
