"""Build bag-of-words and bag-of-bigrams document-term matrices from cleaned tips."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd
from scipy import sparse as sp
from sklearn.feature_extraction.text import CountVectorizer, TfidfTransformer

INPUT_PATH = Path("data/processed/tips_processed.csv")
MATRIX_DIR = Path("data/processed/term_matrices")
DOCUMENTS_PATH = Path("data/processed/documents.csv")
TABLES_DIR = Path("outputs/tables")

FEATURE_SETS = {
    "unigram": (1, 1),
    "bigram": (2, 2),
}
DOCUMENT_LEVEL = "business"
SPARSE_THRESHOLD = 0.99
WEIGHTING = "tf"
DOCUMENT_LEVELS = ("business", "tip")


@dataclass
class TermMatrix:
    """Sparse document-term counts with the labels of both axes."""

    matrix: sp.csr_matrix
    terms: np.ndarray
    doc_ids: np.ndarray

    @property
    def shape(self) -> tuple[int, int]:
        return self.matrix.shape


def _prepare_tips(tips: pd.DataFrame) -> pd.DataFrame:
    missing = {"business_id", "stars", "cleaned_text"} - set(tips.columns)
    if missing:
        raise ValueError(f"Missing columns in tips data: {sorted(missing)}")
    prepared = tips.copy()
    prepared["cleaned_text"] = prepared["cleaned_text"].fillna("").astype(str).str.strip()
    prepared = prepared[prepared["cleaned_text"] != ""]
    prepared["stars"] = pd.to_numeric(prepared["stars"], errors="coerce")
    prepared = prepared.dropna(subset=["stars"])
    prepared["business_id"] = prepared["business_id"].astype(str)
    return prepared.reset_index(drop=True)


def _document_keys(tips: pd.DataFrame, level: str) -> pd.Series:
    if level == "business":
        return tips["business_id"]
    if level == "tip":
        return pd.Series([f"tip_{i}" for i in range(len(tips))], index=tips.index)
    raise ValueError(f"Unsupported document level: {level} (expected one of {DOCUMENT_LEVELS})")


def vectorize_tips(
    cleaned_texts: pd.Series | list[str],
    ngram_range: tuple[int, int],
) -> tuple[sp.csr_matrix, np.ndarray]:
    """Count n-grams per tip. Texts are already cleaned, so split on whitespace."""
    vectorizer = CountVectorizer(
        tokenizer=str.split,
        token_pattern=None,
        lowercase=False,
        ngram_range=ngram_range,
    )
    counts = vectorizer.fit_transform(cleaned_texts).tocsr()
    return counts, vectorizer.get_feature_names_out()


def aggregate_rows(matrix: sp.spmatrix, keys) -> tuple[sp.csr_matrix, np.ndarray]:
    """Sum rows sharing a key. Keys keep their order of first appearance."""
    codes, uniques = pd.factorize(pd.Series(keys), sort=False)
    n_rows = matrix.shape[0]
    indicator = sp.csr_matrix(
        (np.ones(n_rows), (codes, np.arange(n_rows))),
        shape=(len(uniques), n_rows),
    )
    aggregated = (indicator @ matrix).tocsr()
    return aggregated, np.asarray(uniques, dtype=object)


def remove_sparse_terms(term_matrix: TermMatrix, sparse: float) -> TermMatrix:
    """Drop terms missing from more than `sparse` of the documents.

    A term is kept when its document count is strictly greater than
    n_docs * (1 - sparse).
    """
    if not 0 <= sparse < 1:
        raise ValueError(f"sparse must be in [0, 1), got {sparse}")

    n_docs = term_matrix.matrix.shape[0]
    document_counts = np.asarray((term_matrix.matrix > 0).sum(axis=0)).ravel()
    keep = document_counts > n_docs * (1 - sparse)
    if not keep.any():
        raise ValueError(
            f"No terms left after removing sparse terms (sparse={sparse}, documents={n_docs:,}). "
            "Use a higher sparse threshold."
        )

    return TermMatrix(
        matrix=term_matrix.matrix[:, np.flatnonzero(keep)].tocsr(),
        terms=term_matrix.terms[keep],
        doc_ids=term_matrix.doc_ids,
    )


def apply_weighting(term_matrix: TermMatrix, weighting: str) -> TermMatrix:
    if weighting == "tf":
        return term_matrix
    if weighting == "tfidf":
        weighted = TfidfTransformer().fit_transform(term_matrix.matrix).tocsr()
        return TermMatrix(matrix=weighted, terms=term_matrix.terms, doc_ids=term_matrix.doc_ids)
    raise ValueError(f"Unsupported weighting: {weighting} (expected 'tf' or 'tfidf')")


def build_term_matrix(
    tips: pd.DataFrame,
    *,
    ngram_range: tuple[int, int],
    level: str = DOCUMENT_LEVEL,
    sparse: float = SPARSE_THRESHOLD,
    weighting: str = WEIGHTING,
) -> TermMatrix:
    """Vectorize cleaned tips, group them into documents and filter sparse terms."""
    prepared = _prepare_tips(tips)
    keys = _document_keys(prepared, level)

    counts, terms = vectorize_tips(prepared["cleaned_text"], ngram_range)
    matrix, doc_ids = aggregate_rows(counts, keys)

    term_matrix = TermMatrix(matrix=matrix, terms=np.asarray(terms, dtype=object), doc_ids=doc_ids)
    term_matrix = remove_sparse_terms(term_matrix, sparse)
    return apply_weighting(term_matrix, weighting)


def build_documents(tips: pd.DataFrame, level: str = DOCUMENT_LEVEL) -> pd.DataFrame:
    """One row per document with its star label and number of tips."""
    prepared = _prepare_tips(tips)
    prepared["doc_id"] = _document_keys(prepared, level)
    documents = (
        prepared.groupby("doc_id", sort=False)
        .agg(stars=("stars", "first"), tip_count=("cleaned_text", "size"))
        .reset_index()
    )
    return documents


def term_frequencies(term_matrix: TermMatrix) -> pd.DataFrame:
    matrix = term_matrix.matrix
    df = pd.DataFrame(
        {
            "term": term_matrix.terms,
            "frequency": np.asarray(matrix.sum(axis=0)).ravel(),
            "document_count": np.asarray((matrix > 0).sum(axis=0)).ravel(),
        }
    )
    return df.sort_values(["frequency", "term"], ascending=[False, True]).reset_index(drop=True)


def save_term_matrix(term_matrix: TermMatrix, output_dir: Path, name: str) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    sp.save_npz(output_dir / f"{name}_matrix.npz", term_matrix.matrix)
    pd.DataFrame({"term": term_matrix.terms}).to_csv(output_dir / f"{name}_terms.csv", index=False)
    pd.DataFrame({"doc_id": term_matrix.doc_ids}).to_csv(output_dir / f"{name}_doc_ids.csv", index=False)


def load_term_matrix(input_dir: Path, name: str) -> TermMatrix:
    matrix_path = input_dir / f"{name}_matrix.npz"
    if not matrix_path.exists():
        raise FileNotFoundError(f"Term matrix not found: {matrix_path}")
    # keep_default_na stops terms such as "nan" or "null" being read as missing
    terms = pd.read_csv(input_dir / f"{name}_terms.csv", keep_default_na=False)["term"]
    doc_ids = pd.read_csv(
        input_dir / f"{name}_doc_ids.csv",
        dtype={"doc_id": str},
        keep_default_na=False,
    )["doc_id"]
    return TermMatrix(
        matrix=sp.load_npz(matrix_path).tocsr(),
        terms=terms.to_numpy(dtype=object),
        doc_ids=doc_ids.to_numpy(dtype=object),
    )


def main() -> None:
    if not INPUT_PATH.exists():
        raise FileNotFoundError(f"Input file not found: {INPUT_PATH}")

    print("Loading processed tips...")
    tips = pd.read_csv(INPUT_PATH, dtype={"business_id": str}, keep_default_na=False)
    TABLES_DIR.mkdir(parents=True, exist_ok=True)

    documents = build_documents(tips, DOCUMENT_LEVEL)
    DOCUMENTS_PATH.parent.mkdir(parents=True, exist_ok=True)
    documents.to_csv(DOCUMENTS_PATH, index=False)
    print(f"Document level: {DOCUMENT_LEVEL}")
    print(f"Documents: {len(documents):,}")
    print(f"Saved documents: {DOCUMENTS_PATH}")

    for name, ngram_range in FEATURE_SETS.items():
        print(f"\nBuilding {name} document-term matrix (ngram_range={ngram_range})...")
        term_matrix = build_term_matrix(
            tips,
            ngram_range=ngram_range,
            level=DOCUMENT_LEVEL,
            sparse=SPARSE_THRESHOLD,
            weighting=WEIGHTING,
        )
        n_docs, n_terms = term_matrix.shape
        print(f"Matrix shape after sparse filter ({SPARSE_THRESHOLD}): {n_docs:,} x {n_terms:,}")

        save_term_matrix(term_matrix, MATRIX_DIR, name)
        frequencies_path = TABLES_DIR / f"term_frequencies_{name}.csv"
        term_frequencies(term_matrix).to_csv(frequencies_path, index=False)
        print(f"Saved matrix: {MATRIX_DIR / f'{name}_matrix.npz'}")
        print(f"Saved term frequencies: {frequencies_path}")


if __name__ == "__main__":
    main()
