import pytest

from size_matcher.models import ListItem, ShoppingList, StorePrice
from size_matcher.prices import PriceBook
from size_matcher.reprice import calculate_list_total, find_exact_size_match, reprice_on_store_switch


def _item(id="1", name="butter", size="250g", price=2.50, qty=1, **kw):
    return ListItem(id=id, name=name, size=size, estimated_price=price, quantity=qty, **kw)


def _list(*items, store="tesco"):
    return ShoppingList(id="list-1", name="Weekly", store=store, items=list(items))


BOOK = PriceBook({
    "tesco": {
        "butter": [{"size": "250g", "price": 2.50}, {"size": "500g", "price": 4.50}],
        "milk": [{"size": "2pt", "price": 1.45}, {"size": "4pt", "price": 2.75}],
        "eggs": [{"size": "6pk", "price": 2.10}],
    },
    "asda": {
        "butter": [{"size": "227g", "price": 2.35}, {"size": "500g", "price": 4.20}],
        "milk": [{"size": "2 pints", "price": 1.35}, {"size": "4pt", "price": 2.50}],
        "eggs": [{"size": "12pk", "price": 3.80}, {"size": "15pk", "price": 4.10}],
    },
    "aldi": {
        "butter": [{"size": "500g", "price": 4.00}, {"size": "1kg", "price": 7.50}],
    },
})


def test_find_exact_size_match():
    rows = [StorePrice("500ml", 1.0), StorePrice("2 pints", 1.35)]
    assert find_exact_size_match("2pt", rows).price == 1.35
    assert find_exact_size_match("1L", rows) is None
    assert find_exact_size_match(None, rows) is None


def test_calculate_list_total():
    items = [_item(price=1.45), _item(price=2.50), _item(price=3.00, qty=2), _item(price=None)]
    assert calculate_list_total(items) == pytest.approx(9.95)


def test_price_override_is_preserved():
    lst = _list(
        _item(id="1", name="milk", size="2pt", price=1.50, price_override=True),
        _item(id="2", name="butter"),
    )
    result = reprice_on_store_switch(lst, "asda", BOOK)

    assert result.manual_overrides_preserved == 1
    assert all(c.item_id != "1" for c in result.price_changes)
    assert all(c.item_id != "1" for c in result.size_changes)
    assert lst.items[0].estimated_price == 1.50
    assert lst.items[0].size == "2pt"


def test_size_override_updates_price_only():
    lst = _list(_item(name="milk", size="2pt", price=1.45, size_override=True))
    result = reprice_on_store_switch(lst, "asda", BOOK)

    assert lst.items[0].size == "2pt"
    assert lst.items[0].estimated_price == 1.35
    assert result.size_changes == []
    assert [(c.old_price, c.new_price) for c in result.price_changes] == [(1.45, 1.35)]


def test_size_override_without_exact_size_keeps_price():
    lst = _list(_item(name="butter", size="250g", price=2.50, size_override=True))
    result = reprice_on_store_switch(lst, "asda", BOOK)

    assert lst.items[0].size == "250g"
    assert lst.items[0].estimated_price == 2.50
    assert result.items_updated == 0


def test_equivalent_size_is_not_a_size_change():
    lst = _list(_item(name="milk", size="2pt", price=1.45))
    result = reprice_on_store_switch(lst, "asda", BOOK)

    assert result.size_changes == []
    assert lst.items[0].size == "2pt"
    assert lst.items[0].estimated_price == 1.35
    assert lst.items[0].original_size is None


def test_closest_size_within_tolerance():
    lst = _list(_item(name="butter", size="250g", price=2.50))
    result = reprice_on_store_switch(lst, "asda", BOOK)

    item = lst.items[0]
    assert item.size == "227g"
    assert item.estimated_price == 2.35
    assert item.original_size == "250g"
    assert item.original_store == "tesco"
    change = result.size_changes[0]
    assert (change.old_size, change.new_size, change.is_exact) == ("250g", "227g", False)


def test_switch_back_restores_original_size():
    lst = _list(_item(name="butter", size="250g", price=2.50))
    reprice_on_store_switch(lst, "asda", BOOK)
    assert lst.items[0].size == "227g"

    result = reprice_on_store_switch(lst, "tesco", BOOK)
    item = lst.items[0]
    assert item.size == "250g"
    assert item.estimated_price == 2.50
    assert item.original_size is None
    assert item.original_store is None
    assert result.size_changes[0].new_size == "250g"
    assert result.size_changes[0].is_exact


def test_original_size_kept_across_further_switches():
    lst = _list(_item(name="butter", size="250g", price=2.50))
    reprice_on_store_switch(lst, "asda", BOOK)
    reprice_on_store_switch(lst, "aldi", BOOK)

    item = lst.items[0]
    # 227g has no match within 20% at aldi, so the cheapest size is taken
    assert item.size == "500g"
    assert item.original_size == "250g"
    assert item.original_store == "tesco"


def test_legacy_original_size_restored_when_stocked():
    item = _item(name="butter", size="227g", price=2.35, original_size="250g")
    lst = _list(item, store="asda")
    reprice_on_store_switch(lst, "tesco", BOOK)

    assert lst.items[0].size == "250g"
    assert lst.items[0].original_size is None


def test_no_match_falls_back_to_cheapest():
    lst = _list(_item(name="butter", size="250g", price=2.50))
    result = reprice_on_store_switch(lst, "aldi", BOOK)

    item = lst.items[0]
    assert item.size == "500g"
    assert item.estimated_price == 4.00
    assert result.size_changes[0].is_exact is False


def test_count_items_switch_to_closest_pack():
    lst = _list(_item(name="eggs", size="6pk", price=2.10))
    result = reprice_on_store_switch(lst, "asda", BOOK)
    # 12pk and 15pk are both >20% away; cheapest wins
    assert lst.items[0].size == "12pk"
    assert result.size_changes[0].is_exact is False


def test_no_prices_keeps_item():
    lst = _list(_item(name="saffron", size="1g", price=5.99))
    result = reprice_on_store_switch(lst, "asda", BOOK)

    assert lst.items[0].estimated_price == 5.99
    assert result.price_changes == []
    assert result.size_changes == []
    assert result.items_updated == 0


def test_unparsable_size_is_skipped():
    lst = _list(_item(name="butter", size="a big tub", price=3.00))
    result = reprice_on_store_switch(lst, "asda", BOOK)

    assert lst.items[0].size == "a big tub"
    assert lst.items[0].estimated_price == 3.00
    assert result.items_updated == 0


def test_totals_and_savings():
    lst = _list(
        _item(id="1", name="milk", size="2pt", price=1.45),
        _item(id="2", name="butter", size="250g", price=2.50),
        _item(id="3", name="eggs", size="6pk", price=2.10, qty=2, price_override=True),
    )
    result = reprice_on_store_switch(lst, "asda", BOOK)

    assert result.previous_store == "tesco"
    assert result.new_store == "asda"
    assert lst.store == "asda"
    assert result.previous_total == pytest.approx(8.15)
    assert result.new_total == pytest.approx(1.35 + 2.35 + 4.20)
    assert result.savings == pytest.approx(0.25)
    assert result.items_updated == 2
    assert result.manual_overrides_preserved == 1
    assert result.success


def test_lookup_failure_leaves_list_untouched():
    calls = []

    def flaky(name, store):
        calls.append(name)
        if name == "milk":
            raise RuntimeError("price service down")
        return BOOK(name, store)

    lst = _list(
        _item(id="1", name="butter", size="250g", price=2.50),
        _item(id="2", name="milk", size="2pt", price=1.45),
    )
    before = [(i.size, i.estimated_price, i.original_size) for i in lst.items]

    with pytest.raises(RuntimeError, match="price service down"):
        reprice_on_store_switch(lst, "asda", flaky)

    assert calls == ["butter", "milk"]
    assert lst.store == "tesco"
    assert [(i.size, i.estimated_price, i.original_size) for i in lst.items] == before


def test_fallback_skips_unparsable_store_sizes():
    book = PriceBook({"lidl": {"butter": [
        {"size": "large", "price": 0.50},
        {"size": "6pk", "price": 0.90},
        {"size": "1kg", "price": 7.00},
    ]}})
    lst = _list(_item(name="butter", size="250g", price=2.50))
    result = reprice_on_store_switch(lst, "lidl", book)

    # same-category sizes beat cheaper ones from another category
    assert lst.items[0].size == "1kg"
    assert lst.items[0].estimated_price == 7.00
    assert result.size_changes[0].is_exact is False


def test_fallback_crosses_category_only_when_nothing_else():
    book = PriceBook({"lidl": {"butter": [{"size": "large", "price": 0.50}, {"size": "6pk", "price": 0.90}]}})
    lst = _list(_item(name="butter", size="250g", price=2.50))
    reprice_on_store_switch(lst, "lidl", book)
    assert lst.items[0].size == "6pk"


def test_fallback_with_only_unparsable_sizes_keeps_item():
    book = PriceBook({"lidl": {"butter": [{"size": "large", "price": 0.50}]}})
    lst = _list(_item(name="butter", size="250g", price=2.50))
    result = reprice_on_store_switch(lst, "lidl", book)

    assert lst.items[0].size == "250g"
    assert lst.items[0].estimated_price == 2.50
    assert lst.items[0].original_size is None
    assert result.items_updated == 0


def test_overflowing_item_size_does_not_abort_switch():
    huge = "1" + "0" * 400 + "g"
    lst = _list(
        _item(id="1", name="butter", size=huge, price=3.00),
        _item(id="2", name="milk", size="2pt", price=1.45),
    )
    result = reprice_on_store_switch(lst, "asda", BOOK)

    assert lst.items[0].size == huge
    assert lst.items[0].estimated_price == 3.00
    assert lst.items[1].estimated_price == 1.35
    assert result.items_updated == 1
