import pytest

from snowops.core.models import EntityChoice
from snowops.core.selectors import (
    AndSelector,
    KindSelector,
    MatchAllSelector,
    NameRegexSelector,
    OrSelector,
)


def test_name_regex_selector_matches_schema_qualified_label():
    entity = EntityChoice(schema="DB.SALES", name="ORDERS", kind="table")

    assert NameRegexSelector(r"^DB\.SALES\.").matches(entity) is True
    assert NameRegexSelector("ORD").matches(entity) is True


def test_name_regex_selector_no_match():
    entity = EntityChoice(schema="DB.SALES", name="ORDERS", kind="table")

    assert NameRegexSelector("CUSTOMERS").matches(entity) is False


def test_name_regex_selector_rejects_invalid_pattern():
    with pytest.raises(ValueError, match="Invalid regex"):
        NameRegexSelector("(")


def test_kind_selector_is_case_insensitive():
    view = EntityChoice(schema="DB.SALES", name="V_ORDERS", kind="view")

    assert KindSelector("VIEW").matches(view) is True
    assert KindSelector("table").matches(view) is False


def test_and_or_selectors():
    entity = EntityChoice(schema="DB.SALES", name="ORDERS", kind="table")

    name_sel = NameRegexSelector("ORDERS")
    kind_sel = KindSelector("table")

    assert AndSelector([name_sel, kind_sel]).matches(entity) is True
    assert AndSelector([name_sel, KindSelector("view")]).matches(entity) is False
    assert OrSelector([name_sel, KindSelector("view")]).matches(entity) is True
    assert MatchAllSelector().matches(entity) is True
