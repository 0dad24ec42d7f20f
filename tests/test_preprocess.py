"""Tests for tip corpus cleaning."""

import pandas as pd
import pytest
from nltk.stem import PorterStemmer

import preprocess
from preprocess import clean_text, preprocess_frame, read_tips

STOPWORDS = {"the", "and", "is", "was", "don't", "it", "a"}


def test_clean_text_lowercases_and_strips_noise():
    text = "The BEST tacos!!! Visit www.tacos.com or email me@tacos.com, 24/7"

    tokens = clean_text(text, english_stopwords=STOPWORDS)

    assert tokens == ["best", "tacos", "visit", "email"]


def test_clean_text_removes_contracted_stopwords():
    tokens = clean_text("Don't miss the pie", english_stopwords=STOPWORDS)

    assert tokens == ["miss", "pie"]


def test_clean_text_keeps_apostrophe_words_joined():
    tokens = clean_text("Joe's pizza", english_stopwords=STOPWORDS)

    assert tokens == ["joes", "pizza"]


def test_clean_text_drops_short_tokens():
    tokens = clean_text("ok go eat pho now", english_stopwords=set(), min_token_length=3)

    assert tokens == ["eat", "pho", "now"]


def test_clean_text_stems_tokens():
    tokens = clean_text("running burgers", english_stopwords=set(), stemmer=PorterStemmer())

    assert tokens == ["run", "burger"]


def test_clean_text_empty_input():
    assert clean_text("", english_stopwords=STOPWORDS) == []
    assert clean_text("!!! 123 ...", english_stopwords=STOPWORDS) == []


def test_preprocess_frame_adds_columns():
    df = pd.DataFrame({"text": ["Great coffee and cake", None, "It was the worst"]})

    processed = preprocess_frame(df, english_stopwords=STOPWORDS)

    assert processed["cleaned_text"].tolist() == ["great coffee cake", "", "worst"]
    assert processed["token_count"].tolist() == [3, 0, 1]
    assert "cleaned_text" not in df.columns


def test_preprocess_frame_requires_text_column():
    with pytest.raises(ValueError, match="text"):
        preprocess_frame(pd.DataFrame({"body": ["x"]}), english_stopwords=STOPWORDS)


def test_read_tips_keeps_literal_text_and_ids(tmp_path):
    input_path = tmp_path / "tips.csv"
    input_path.write_text(
        "business_id,business_name,stars,user_id,date,text\n"
        "00123,A,4.0,007,2012-01-01,NA\n"
        "b2,B,2.0,u2,2012-01-02,null\n",
        encoding="utf-8",
    )

    df = read_tips(input_path)

    assert df["business_id"].tolist() == ["00123", "b2"]
    assert df["user_id"].tolist() == ["007", "u2"]
    assert df["text"].tolist() == ["NA", "null"]


def test_read_tips_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_tips(tmp_path / "missing.csv")


def test_main_keeps_tips_that_look_like_missing_values(tmp_path, monkeypatch):
    input_path = tmp_path / "tips_merged.csv"
    output_path = tmp_path / "tips_processed.csv"
    input_path.write_text(
        "business_id,business_name,stars,user_id,date,text\n"
        "00123,A,4.0,u1,2012-01-01,NA\n"
        "00456,B,2.0,u2,2012-01-02,null\n",
        encoding="utf-8",
    )
    monkeypatch.setattr(preprocess, "INPUT_PATH", input_path)
    monkeypatch.setattr(preprocess, "OUTPUT_PATH", output_path)
    monkeypatch.setattr(preprocess, "STEM_WORDS", False)
    monkeypatch.setattr(preprocess, "load_stopwords", lambda: set())

    preprocess.main()

    processed = pd.read_csv(output_path, dtype=str, keep_default_na=False)
    assert processed["business_id"].tolist() == ["00123", "00456"]
    assert processed["cleaned_text"].tolist() == ["", "null"]


def test_preprocess_frame_matches_clean_text():
    texts = ["Don't miss the pie", "Joe's running burgers"]
    stemmer = PorterStemmer()

    processed = preprocess_frame(pd.DataFrame({"text": texts}), english_stopwords=STOPWORDS, stemmer=stemmer)

    expected = [" ".join(clean_text(text, english_stopwords=STOPWORDS, stemmer=stemmer)) for text in texts]
    assert processed["cleaned_text"].tolist() == expected
    assert expected[0] == "miss pie"
