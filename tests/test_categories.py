from tripbudget.categories import category_label, date_label, merge_categories, uses_date_range


def test_labels():
    assert category_label("food") == "Food & Dining"
    assert category_label("activities") == "Activities & Tours"
    assert category_label("souvenirs") == "Souvenirs"
    assert date_label("hotel") == "Check-in Date"
    assert date_label("hotel", is_end=True) == "Check-out Date"
    assert date_label("flight", is_end=True) == "Arrival Date"
    assert date_label("Souvenirs") == "Transaction Date"


def test_ranged_categories():
    assert uses_date_range("hotel")
    assert uses_date_range("flight")
    assert not uses_date_range("food")


def test_merge_categories_skips_duplicates():
    merged = merge_categories(["Souvenirs", "FOOD", " souvenirs ", "", "Tips"])
    assert merged[8:] == ["Souvenirs", "Tips"]
    assert len(merged) == 10
