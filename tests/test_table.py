from template_scraper.table import (
    SortDirective,
    display_value,
    next_sort,
    rows_to_dataframe,
    sort_rows,
)


ROWS = [
    {"name": "pear", "price": "3"},
    {"name": "apple", "price": "10"},
    {"name": "fig"},
    {"name": "banana", "price": ""},
]


def names(rows):
    return [r["name"] for r in rows]


def test_next_sort_toggles_same_column():
    d = next_sort(SortDirective(), "name")
    assert d == SortDirective("name", "asc")
    d = next_sort(d, "name")
    assert d == SortDirective("name", "desc")
    d = next_sort(d, "name")
    assert d == SortDirective("name", "asc")


def test_next_sort_other_column_resets_to_ascending():
    assert next_sort(SortDirective("name", "desc"), "price") == SortDirective("price", "asc")
    assert next_sort(SortDirective("name", "asc"), "price") == SortDirective("price", "asc")


def test_sort_is_string_comparison_with_missing_first():
    asc = sort_rows(ROWS, SortDirective("price", "asc"))
    # "" < "10" < "3" as strings
    assert names(asc) == ["fig", "banana", "apple", "pear"]


def test_asc_desc_asc_returns_original_ascending_order():
    d = next_sort(SortDirective(), "name")
    first = sort_rows(ROWS, d)
    d = next_sort(d, "name")
    desc = sort_rows(ROWS, d)
    d = next_sort(d, "name")
    again = sort_rows(ROWS, d)

    assert names(first) == ["apple", "banana", "fig", "pear"]
    assert names(desc) == ["pear", "fig", "banana", "apple"]
    assert again == first


def test_sort_never_reorders_base_rows():
    base = list(ROWS)
    sort_rows(ROWS, SortDirective("name", "desc"))
    assert ROWS == base


def test_no_key_keeps_order():
    assert sort_rows(ROWS, SortDirective()) == ROWS


def test_display_value_marks_missing():
    assert display_value({"a": "x"}, "a") == "x"
    assert display_value({"a": ""}, "a") == "N/A"
    assert display_value({}, "a") == "N/A"
    assert display_value({"a": 0}, "a") == "0"


def test_dataframe_has_template_columns():
    df = rows_to_dataframe(ROWS, ["name", "price"])
    assert list(df.columns) == ["name", "price"]
    assert df.iloc[2]["price"] == "N/A"
    assert len(df) == 4


def test_dataframe_empty_rows():
    df = rows_to_dataframe([], ["name"])
    assert df.empty
    assert list(df.columns) == ["name"]
