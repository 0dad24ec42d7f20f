"""LASSO regression of business star rating on tip term frequencies."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from scipy import sparse as sp
from sklearn.linear_model import Lasso, LassoCV
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from sklearn.model_selection import KFold, train_test_split
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

from term_matrix import FEATURE_SETS, MATRIX_DIR, TermMatrix, load_term_matrix

RANDOM_STATE = 42
DOCUMENTS_PATH = Path("data/processed/documents.csv")
OUTPUT_DIR = Path("outputs/tables")
TEST_SIZE = 0.2
CV_FOLDS = 10
N_ALPHAS = 100
LAMBDA_RULE = "1se"
STANDARDIZE = True
MAX_ITER = 10_000


def join_labels(
    term_matrix: TermMatrix,
    documents: pd.DataFrame,
) -> tuple[sp.csr_matrix, np.ndarray, np.ndarray]:
    """Attach star labels to matrix rows by document id (inner join, matrix order)."""
    if not {"doc_id", "stars"} <= set(documents.columns):
        raise ValueError("Documents table needs 'doc_id' and 'stars' columns")

    labels = documents.assign(doc_id=documents["doc_id"].astype(str))
    labels = labels.drop_duplicates(subset=["doc_id"]).set_index("doc_id")["stars"]
    labels = pd.to_numeric(labels, errors="coerce")

    doc_ids = pd.Series(term_matrix.doc_ids).astype(str)
    y_all = doc_ids.map(labels)
    mask = y_all.notna().to_numpy()
    if not mask.any():
        raise ValueError("No document ids in the term matrix have a star rating")

    rows = np.flatnonzero(mask)
    X = sp.csr_matrix(term_matrix.matrix)[rows]
    return X, y_all[mask].to_numpy(dtype=float), doc_ids[mask].to_numpy(dtype=object)


def _scale(X, standardize: bool):
    if not standardize:
        return X
    return StandardScaler(with_mean=False).fit_transform(X)


def alpha_grid(X, y: np.ndarray, *, n_alphas: int = N_ALPHAS, eps: float | None = None) -> np.ndarray:
    """Log-spaced penalties from the smallest all-zero penalty downwards.

    The ratio between the smallest and largest penalty defaults to 1e-4 when
    there are more documents than terms and 1e-2 otherwise.
    """
    n_samples, n_features = X.shape
    if eps is None:
        eps = 1e-4 if n_samples > n_features else 1e-2

    y_centered = np.asarray(y, dtype=float) - np.mean(y)
    # Centering X is unnecessary here because y_centered sums to zero.
    correlations = np.asarray(X.T @ y_centered).ravel()
    alpha_max = np.abs(correlations).max() / n_samples if correlations.size else 0.0
    if alpha_max <= 0:
        raise ValueError("Cannot build a penalty grid: target is constant or matrix is all zero")

    return np.geomspace(alpha_max, alpha_max * eps, num=n_alphas)


def cross_validate_lasso(
    X,
    y: np.ndarray,
    *,
    cv_folds: int = CV_FOLDS,
    n_alphas: int = N_ALPHAS,
    standardize: bool = STANDARDIZE,
    random_state: int = RANDOM_STATE,
) -> pd.DataFrame:
    """K-fold cross-validated MSE for every penalty on the grid.

    Returns columns alpha, mean_mse, std_error sorted by decreasing alpha.
    """
    n_samples = X.shape[0]
    if n_samples < cv_folds:
        raise ValueError(
            f"Need at least {cv_folds} training documents for {cv_folds}-fold CV, got {n_samples}"
        )

    X_scaled = _scale(X, standardize)
    alphas = alpha_grid(X_scaled, y, n_alphas=n_alphas)

    model = LassoCV(
        alphas=alphas,
        cv=KFold(n_splits=cv_folds, shuffle=True, random_state=random_state),
        max_iter=MAX_ITER,
        n_jobs=-1,
    )
    model.fit(X_scaled, y)

    mse_path = np.asarray(model.mse_path_)
    cv_path = pd.DataFrame(
        {
            "alpha": model.alphas_,
            "mean_mse": mse_path.mean(axis=1),
            "std_error": mse_path.std(axis=1, ddof=1) / math.sqrt(mse_path.shape[1]),
        }
    )
    return cv_path.sort_values("alpha", ascending=False).reset_index(drop=True)


def select_alpha(cv_path: pd.DataFrame, rule: str = LAMBDA_RULE) -> float:
    """Pick the penalty with lowest CV error ("min") or the one-standard-error choice ("1se")."""
    ordered = cv_path.sort_values("alpha", ascending=False).reset_index(drop=True)
    best = ordered.loc[ordered["mean_mse"].idxmin()]
    if rule == "min":
        return float(best["alpha"])
    if rule == "1se":
        threshold = best["mean_mse"] + best["std_error"]
        within = ordered[ordered["mean_mse"] <= threshold]
        return float(within["alpha"].max())
    raise ValueError(f"Unsupported lambda rule: {rule} (expected 'min' or '1se')")


def fit_lasso(X, y: np.ndarray, alpha: float, *, standardize: bool = STANDARDIZE) -> Pipeline:
    model = Pipeline(
        [
            ("scale", StandardScaler(with_mean=False) if standardize else "passthrough"),
            ("lasso", Lasso(alpha=alpha, max_iter=MAX_ITER)),
        ]
    )
    model.fit(X, y)
    return model


def evaluate(model: Pipeline, X_test, y_test: np.ndarray, *, baseline: float) -> dict[str, float]:
    """Test-set errors of the model and of always predicting `baseline`."""
    y_pred = model.predict(X_test)
    mse = float(mean_squared_error(y_test, y_pred))
    return {
        "mse": mse,
        "rmse": math.sqrt(mse),
        "mae": float(mean_absolute_error(y_test, y_pred)),
        "r2": float(r2_score(y_test, y_pred)) if len(y_test) > 1 else float("nan"),
        "baseline_mse": float(np.mean((np.asarray(y_test) - baseline) ** 2)),
    }


def extract_coefficients(model: Pipeline, terms) -> pd.DataFrame:
    """Non-zero coefficients per term, on the original term-count scale."""
    lasso = model.named_steps["lasso"]
    scaler = model.named_steps["scale"]
    scaled_coef = np.asarray(lasso.coef_, dtype=float)
    if isinstance(scaler, StandardScaler):
        scale = np.asarray(scaler.scale_, dtype=float)
    else:
        scale = np.ones_like(scaled_coef)

    coefficients = pd.DataFrame(
        {
            "term": np.asarray(terms, dtype=object),
            "coefficient": scaled_coef / scale,
            "scaled_coefficient": scaled_coef,
        }
    )
    coefficients = coefficients[coefficients["scaled_coefficient"] != 0]
    return coefficients.sort_values("coefficient", ascending=False).reset_index(drop=True)


def run_feature_set(
    name: str,
    term_matrix: TermMatrix,
    documents: pd.DataFrame,
    *,
    output_dir: Path = OUTPUT_DIR,
    test_size: float = TEST_SIZE,
    cv_folds: int = CV_FOLDS,
    n_alphas: int = N_ALPHAS,
    rule: str = LAMBDA_RULE,
    standardize: bool = STANDARDIZE,
    random_state: int = RANDOM_STATE,
) -> dict[str, Any]:
    """Split, cross-validate, fit and evaluate one feature set; save its tables."""
    X, y, doc_ids = join_labels(term_matrix, documents)
    print(f"Documents with labels: {len(y):,}, terms: {X.shape[1]:,}")

    train_idx, test_idx = train_test_split(
        np.arange(len(y)),
        test_size=test_size,
        random_state=random_state,
    )
    X_train, X_test = X[train_idx], X[test_idx]
    y_train, y_test = y[train_idx], y[test_idx]
    print(f"Train size: {len(train_idx):,}")
    print(f"Test size: {len(test_idx):,}")

    print(f"Running {cv_folds}-fold cross-validation over {n_alphas} penalties...")
    cv_path = cross_validate_lasso(
        X_train,
        y_train,
        cv_folds=cv_folds,
        n_alphas=n_alphas,
        standardize=standardize,
        random_state=random_state,
    )
    alpha_min = select_alpha(cv_path, "min")
    alpha_1se = select_alpha(cv_path, "1se")
    alpha = select_alpha(cv_path, rule)
    print(f"alpha (min): {alpha_min:.6g}, alpha (1se): {alpha_1se:.6g}, using {rule}")

    model = fit_lasso(X_train, y_train, alpha, standardize=standardize)
    baseline = float(np.mean(y_train))
    metrics = evaluate(model, X_test, y_test, baseline=baseline)
    coefficients = extract_coefficients(model, term_matrix.terms)

    output_dir.mkdir(parents=True, exist_ok=True)
    cv_path_file = output_dir / f"lasso_cv_path_{name}.csv"
    cv_path.to_csv(cv_path_file, index=False)
    coefficients_file = output_dir / f"lasso_coefficients_{name}.csv"
    coefficients.to_csv(coefficients_file, index=False)
    predictions = pd.DataFrame(
        {
            "doc_id": doc_ids[test_idx],
            "true_stars": y_test,
            "predicted_stars": model.predict(X_test),
        }
    )
    predictions["absolute_error"] = (predictions["true_stars"] - predictions["predicted_stars"]).abs()
    predictions_file = output_dir / f"lasso_predictions_{name}.csv"
    predictions.sort_values("absolute_error", ascending=False).to_csv(predictions_file, index=False)

    print(f"Test MSE: {metrics['mse']:.4f} (baseline {metrics['baseline_mse']:.4f})")
    print(f"Non-zero coefficients: {len(coefficients):,}")
    print(f"Saved CV path: {cv_path_file}")
    print(f"Saved coefficients: {coefficients_file}")
    print(f"Saved predictions: {predictions_file}")

    return {
        "feature_set": name,
        "n_documents": int(len(y)),
        "n_terms": int(X.shape[1]),
        "n_train": int(len(train_idx)),
        "n_test": int(len(test_idx)),
        "lambda_rule": rule,
        "alpha_min": alpha_min,
        "alpha_1se": alpha_1se,
        "alpha": alpha,
        "n_nonzero": int(len(coefficients)),
        "intercept": float(model.named_steps["lasso"].intercept_),
        **metrics,
    }


def main() -> None:
    if not DOCUMENTS_PATH.exists():
        raise FileNotFoundError(f"Input file not found: {DOCUMENTS_PATH}")
    documents = pd.read_csv(DOCUMENTS_PATH, dtype={"doc_id": str}, keep_default_na=False)

    rows = []
    for name in FEATURE_SETS:
        print(f"\nFeature set: {name}")
        term_matrix = load_term_matrix(MATRIX_DIR, name)
        rows.append(run_feature_set(name, term_matrix, documents))

    metrics_df = pd.DataFrame(rows)
    metrics_path = OUTPUT_DIR / "lasso_metrics.csv"
    metrics_df.to_csv(metrics_path, index=False)

    print("\nLASSO results:")
    print(
        metrics_df[["feature_set", "alpha", "n_nonzero", "mse", "baseline_mse", "r2"]].to_string(
            index=False,
            float_format=lambda x: f"{x:.4f}",
        )
    )
    print(f"Saved metrics: {metrics_path}")


if __name__ == "__main__":
    main()
