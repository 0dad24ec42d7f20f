"""Load Yelp business records and tips, and join each tip to its business rating."""

from __future__ import annotations

import csv
import json
import random
from pathlib import Path
from typing import Any, Iterator

BUSINESS_PATH = Path("data/raw/yelp_academic_dataset_business.json")
TIP_PATH = Path("data/raw/yelp_academic_dataset_tip.json")
OUTPUT_PATH = Path("data/processed/tips_merged.csv")
CITY_FILTER = None
CATEGORY_FILTER = None
MAX_TIPS = None
RANDOM_SEED = 42

OUTPUT_FIELDS = [
    "business_id",
    "business_name",
    "stars",
    "user_id",
    "date",
    "text",
]


def iter_json_records(path: Path) -> Iterator[dict[str, Any]]:
    """Yield one dict per line of a line-delimited JSON file."""
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    # Read bytes so decoding errors can be reported with their line number.
    with path.open("rb") as infile:
        for line_number, raw_line in enumerate(infile, start=1):
            try:
                line = raw_line.decode("utf-8").strip()
            except UnicodeDecodeError as exc:
                raise ValueError(
                    f"Invalid UTF-8 in {path} on line {line_number}: {exc.reason}"
                ) from exc
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as exc:
                raise ValueError(
                    f"Malformed JSON in {path} on line {line_number}: {exc.msg}"
                ) from exc
            if not isinstance(record, dict):
                raise ValueError(
                    f"Expected a JSON object in {path} on line {line_number}, "
                    f"got {type(record).__name__}"
                )
            yield record


def _has_category(categories: Any, category: str) -> bool:
    # Older dataset releases store categories as a list, newer ones as a
    # comma-separated string.
    if categories is None:
        return False
    if isinstance(categories, (list, tuple)):
        return any(category.lower() in str(item).lower() for item in categories)
    return category.lower() in str(categories).lower()


def load_business_ratings(
    path: Path,
    *,
    city: str | None = None,
    category: str | None = None,
) -> dict[str, dict[str, Any]]:
    """Map business_id to its name, star rating and review count.

    Businesses without an id or a numeric star rating are skipped.
    """
    businesses = {}
    for business in iter_json_records(path):
        business_id = business.get("business_id")
        if not business_id:
            continue
        if city is not None:
            if str(business.get("city", "")).strip().lower() != city.strip().lower():
                continue
        if category is not None and not _has_category(business.get("categories"), category):
            continue

        stars = business.get("stars")
        if isinstance(stars, bool) or not isinstance(stars, (int, float)):
            continue

        businesses[business_id] = {
            "business_name": business.get("name", ""),
            "stars": float(stars),
            "review_count": business.get("review_count", 0),
        }
    return businesses


def collect_tips(
    path: Path,
    businesses: dict[str, dict[str, Any]],
    *,
    max_tips: int | None = None,
    seed: int = RANDOM_SEED,
) -> tuple[list[dict[str, Any]], int]:
    """Keep tips for known businesses, optionally downsampled.

    Returns the kept rows and the number of matching tips seen.
    """
    if max_tips is not None and max_tips < 1:
        raise ValueError(f"max_tips must be positive, got {max_tips}")

    random_generator = random.Random(seed)
    sampled_rows = []
    seen_matching_tips = 0

    for tip in iter_json_records(path):
        business_id = tip.get("business_id")
        if business_id not in businesses:
            continue
        text = str(tip.get("text") or "")
        if not text.strip():
            continue

        seen_matching_tips += 1
        business = businesses[business_id]
        row = {
            "business_id": business_id,
            "business_name": business["business_name"],
            "stars": business["stars"],
            "user_id": tip.get("user_id", ""),
            "date": tip.get("date", ""),
            "text": text,
        }

        # Reservoir sampling: fill first, then replace with decreasing probability.
        if max_tips is None or len(sampled_rows) < max_tips:
            sampled_rows.append(row)
        else:
            replacement_index = random_generator.randint(1, seen_matching_tips)
            if replacement_index <= max_tips:
                sampled_rows[replacement_index - 1] = row

    return sampled_rows, seen_matching_tips


def write_rows(rows: list[dict[str, Any]], output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8", newline="") as outfile:
        writer = csv.DictWriter(outfile, fieldnames=OUTPUT_FIELDS)
        writer.writeheader()
        writer.writerows(rows)


def main() -> None:
    print("Reading business records...")
    businesses = load_business_ratings(
        BUSINESS_PATH,
        city=CITY_FILTER,
        category=CATEGORY_FILTER,
    )
    if not businesses:
        raise ValueError(f"No rated businesses found in {BUSINESS_PATH}")

    print("Reading tips...")
    rows, seen_matching_tips = collect_tips(
        TIP_PATH,
        businesses,
        max_tips=MAX_TIPS,
        seed=RANDOM_SEED,
    )
    if not rows:
        raise ValueError(f"No tips in {TIP_PATH} match the loaded businesses")

    write_rows(rows, OUTPUT_PATH)

    print(f"Rated businesses: {len(businesses):,}")
    print(f"Matching tips seen: {seen_matching_tips:,}")
    print(f"Rows saved: {len(rows):,}")
    print(f"Output written to: {OUTPUT_PATH}")


if __name__ == "__main__":
    main()
