"""Corpus cleaning for Yelp tips before building document-term matrices."""

from __future__ import annotations

import re
from pathlib import Path

import nltk
import pandas as pd
from nltk.corpus import stopwords
from nltk.stem import PorterStemmer

INPUT_PATH = Path("data/processed/tips_merged.csv")
OUTPUT_PATH = Path("data/processed/tips_processed.csv")
TEXT_COLUMN = "text"
STEM_WORDS = True
MIN_TOKEN_LENGTH = 3

URL_PATTERN = re.compile(r"(https?://\S+|www\.\S+)", flags=re.IGNORECASE)
EMAIL_PATTERN = re.compile(r"\b[\w\.-]+@[\w\.-]+\.\w+\b", flags=re.IGNORECASE)
APOSTROPHE_PATTERN = re.compile(r"['’]")
PUNCTUATION_PATTERN = re.compile(r"[^\w\s]|_")
NUMBER_PATTERN = re.compile(r"\d+")


def load_stopwords() -> set[str]:
    """Return NLTK's English stopwords, downloading the corpus if needed."""
    try:
        nltk.data.find("corpora/stopwords")
    except LookupError:
        nltk.download("stopwords", quiet=True)
    try:
        return set(stopwords.words("english"))
    except LookupError as exc:
        raise RuntimeError(
            "NLTK stopwords corpus is missing. Run nltk.download('stopwords')."
        ) from exc


def _normalize_stopwords(english_stopwords: set[str]) -> set[str]:
    # Apostrophes are deleted from the text, so "don't" must also match "dont".
    normalized = set()
    for word in english_stopwords:
        word = word.lower().strip()
        normalized.add(word)
        normalized.add(APOSTROPHE_PATTERN.sub("", word))
    return normalized


def _clean_tokens(
    text: str,
    stop_set: set[str],
    stemmer: PorterStemmer | None,
    min_token_length: int,
) -> list[str]:
    text = text.lower()
    text = URL_PATTERN.sub(" ", text)
    text = EMAIL_PATTERN.sub(" ", text)
    text = APOSTROPHE_PATTERN.sub("", text)
    text = PUNCTUATION_PATTERN.sub(" ", text)
    text = NUMBER_PATTERN.sub(" ", text)

    tokens = []
    for token in text.split():
        if token in stop_set or len(token) < min_token_length:
            continue
        if stemmer is not None:
            token = stemmer.stem(token)
        tokens.append(token)
    return tokens


def clean_text(
    text: str,
    *,
    english_stopwords: set[str],
    stemmer: PorterStemmer | None = None,
    min_token_length: int = MIN_TOKEN_LENGTH,
) -> list[str]:
    """Lowercase, strip URLs/punctuation/numbers/stopwords and optionally stem."""
    return _clean_tokens(text, _normalize_stopwords(english_stopwords), stemmer, min_token_length)


def read_tips(path: Path) -> pd.DataFrame:
    """Read merged tips keeping ids and texts exactly as written."""
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    # keep_default_na stops tips such as "NA" or "null" being read as missing
    return pd.read_csv(
        path,
        dtype={"business_id": str, "user_id": str, TEXT_COLUMN: str},
        keep_default_na=False,
    )


def preprocess_frame(
    df: pd.DataFrame,
    *,
    english_stopwords: set[str],
    stemmer: PorterStemmer | None = None,
    text_column: str = TEXT_COLUMN,
) -> pd.DataFrame:
    if text_column not in df.columns:
        raise ValueError(f"Expected '{text_column}' column in input data")

    stop_set = _normalize_stopwords(english_stopwords)
    token_lists = [
        _clean_tokens(text, stop_set, stemmer, MIN_TOKEN_LENGTH)
        for text in df[text_column].fillna("").astype(str)
    ]

    processed = df.copy()
    processed["cleaned_text"] = [" ".join(tokens) for tokens in token_lists]
    processed["token_count"] = [len(tokens) for tokens in token_lists]
    return processed


def main() -> None:
    df = read_tips(INPUT_PATH)
    english_stopwords = load_stopwords()
    stemmer = PorterStemmer() if STEM_WORDS else None

    processed = preprocess_frame(df, english_stopwords=english_stopwords, stemmer=stemmer)

    OUTPUT_PATH.parent.mkdir(parents=True, exist_ok=True)
    processed.to_csv(OUTPUT_PATH, index=False)

    print(f"Saved processed file: {OUTPUT_PATH}")
    print(f"Rows processed: {len(processed):,}")
    nonempty = int((processed["token_count"] > 0).sum())
    print(f"Non-empty cleaned tips: {nonempty:,}")


if __name__ == "__main__":
    main()
