"""Tests for reading business/tip JSON and joining tips to ratings."""

import csv
import json

import pytest

from data_loader import collect_tips, iter_json_records, load_business_ratings, write_rows


def _write_lines(path, records):
    with path.open("w", encoding="utf-8") as outfile:
        for record in records:
            outfile.write(json.dumps(record) + "\n")


@pytest.fixture
def business_path(tmp_path):
    path = tmp_path / "business.json"
    _write_lines(
        path,
        [
            {"business_id": "b1", "name": "Pizza Place", "stars": 4.5, "city": "Phoenix",
             "categories": "Pizza, Restaurants", "review_count": 10},
            {"business_id": "b2", "name": "Bad Diner", "stars": 1.5, "city": "Las Vegas",
             "categories": ["Diners", "Restaurants"], "review_count": 3},
            {"business_id": "b3", "name": "Nail Salon", "stars": 3, "city": "phoenix",
             "categories": "Beauty & Spas"},
            {"business_id": "b4", "name": "No Rating"},
            {"name": "No Id", "stars": 5},
        ],
    )
    return path


def test_iter_json_records_skips_blank_lines(tmp_path):
    path = tmp_path / "records.json"
    path.write_text('{"a": 1}\n\n{"a": 2}\n', encoding="utf-8")

    assert [record["a"] for record in iter_json_records(path)] == [1, 2]


def test_iter_json_records_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        list(iter_json_records(tmp_path / "missing.json"))


def test_iter_json_records_reports_malformed_line(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text('{"a": 1}\n{"a": \n', encoding="utf-8")

    with pytest.raises(ValueError, match="line 2"):
        list(iter_json_records(path))


def test_iter_json_records_reports_invalid_utf8(tmp_path):
    path = tmp_path / "latin1.json"
    path.write_bytes(b'{"a": 1}\n{"text": "caf\xe9"}\n')

    with pytest.raises(ValueError, match=r"Invalid UTF-8 .* on line 2"):
        list(iter_json_records(path))


def test_iter_json_records_rejects_non_objects(tmp_path):
    path = tmp_path / "list.json"
    path.write_text("[1, 2]\n", encoding="utf-8")

    with pytest.raises(ValueError, match="JSON object"):
        list(iter_json_records(path))


def test_load_business_ratings_skips_unrated(business_path):
    businesses = load_business_ratings(business_path)

    assert set(businesses) == {"b1", "b2", "b3"}
    assert businesses["b1"] == {"business_name": "Pizza Place", "stars": 4.5, "review_count": 10}
    assert businesses["b3"]["stars"] == 3.0


def test_load_business_ratings_filters(business_path):
    assert set(load_business_ratings(business_path, city="PHOENIX")) == {"b1", "b3"}
    assert set(load_business_ratings(business_path, category="restaurants")) == {"b1", "b2"}
    assert set(load_business_ratings(business_path, city="Phoenix", category="Restaurants")) == {"b1"}


def test_load_business_ratings_category_substring_for_list_and_string(business_path):
    # b1 stores categories as a string, b2 as a list.
    assert set(load_business_ratings(business_path, category="Restaurant")) == {"b1", "b2"}
    assert set(load_business_ratings(business_path, category="diner")) == {"b2"}


def test_collect_tips_joins_ratings(tmp_path, business_path):
    tip_path = tmp_path / "tip.json"
    _write_lines(
        tip_path,
        [
            {"business_id": "b1", "user_id": "u1", "text": "Great crust!", "date": "2012-01-01"},
            {"business_id": "b2", "user_id": "u2", "text": "Avoid.", "date": "2012-02-01"},
            {"business_id": "zzz", "user_id": "u3", "text": "Unknown place", "date": "2012-03-01"},
            {"business_id": "b1", "user_id": "u4", "text": "   ", "date": "2012-04-01"},
        ],
    )
    businesses = load_business_ratings(business_path)

    rows, seen = collect_tips(tip_path, businesses)

    assert seen == 2
    assert [row["text"] for row in rows] == ["Great crust!", "Avoid."]
    assert rows[0]["stars"] == 4.5
    assert rows[1]["business_name"] == "Bad Diner"


def test_collect_tips_reservoir_sampling_is_seeded(tmp_path, business_path):
    tip_path = tmp_path / "tip.json"
    _write_lines(
        tip_path,
        [{"business_id": "b1", "user_id": f"u{i}", "text": f"tip {i}"} for i in range(50)],
    )
    businesses = load_business_ratings(business_path)

    first, seen = collect_tips(tip_path, businesses, max_tips=5, seed=7)
    second, _ = collect_tips(tip_path, businesses, max_tips=5, seed=7)

    assert seen == 50
    assert len(first) == 5
    assert first == second


def test_collect_tips_rejects_bad_sample_size(tmp_path, business_path):
    with pytest.raises(ValueError):
        collect_tips(tmp_path / "tip.json", {}, max_tips=0)


def test_write_rows_creates_csv(tmp_path):
    output_path = tmp_path / "nested" / "tips.csv"
    write_rows(
        [{"business_id": "b1", "business_name": "A", "stars": 4.0, "user_id": "u",
          "date": "2012-01-01", "text": "nice, cheap"}],
        output_path,
    )

    with output_path.open(encoding="utf-8") as infile:
        rows = list(csv.DictReader(infile))
    assert rows[0]["text"] == "nice, cheap"
    assert rows[0]["stars"] == "4.0"
