"""Assemble outputs/report.md from the saved tables and figures."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from term_matrix import DOCUMENT_LEVEL, FEATURE_SETS, SPARSE_THRESHOLD, WEIGHTING

DOCUMENTS_PATH = Path("data/processed/documents.csv")
TABLES_DIR = Path("outputs/tables")
FIGURES_DIR = Path("outputs/figures")
REPORT_PATH = Path("outputs/report.md")
TOP_TERMS = 10


def _read_table(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"Input table not found: {path}")
    return pd.read_csv(path, keep_default_na=False)


def _code_block(df: pd.DataFrame) -> list[str]:
    return ["```", df.to_string(index=False, float_format=lambda x: f"{x:.4f}"), "```", ""]


def _figure(lines: list[str], figures_dir: Path, filename: str, caption: str, report_dir: Path) -> None:
    path = figures_dir / filename
    if path.exists():
        lines.extend([f"![{caption}]({path.relative_to(report_dir).as_posix()})", ""])


def build_report(
    documents: pd.DataFrame,
    metrics: pd.DataFrame,
    coefficients: dict[str, pd.DataFrame],
    *,
    figures_dir: Path = FIGURES_DIR,
    report_dir: Path = REPORT_PATH.parent,
) -> str:
    """Return the Markdown text of the report."""
    lines = [
        "# Predicting Yelp Star Ratings from Tip Text with LASSO",
        "",
        "## Data",
        "",
        f"- Document level: {DOCUMENT_LEVEL}",
        f"- Documents: {len(documents):,}",
        f"- Tips: {int(pd.to_numeric(documents['tip_count']).sum()):,}",
        f"- Mean stars: {pd.to_numeric(documents['stars']).mean():.3f}",
        f"- Sparse-term threshold: {SPARSE_THRESHOLD}",
        f"- Term weighting: {WEIGHTING}",
        "",
    ]
    _figure(lines, figures_dir, "star_distribution.png", "Star distribution", report_dir)

    lines.extend(["## Model performance (test split)", ""])
    columns = [
        "feature_set",
        "n_terms",
        "alpha_min",
        "alpha_1se",
        "lambda_rule",
        "alpha",
        "n_nonzero",
        "mse",
        "baseline_mse",
        "r2",
    ]
    lines.extend(_code_block(metrics[columns]))
    lines.extend(
        [
            "The baseline predicts the mean star rating of the training documents.",
            "alpha_min has the lowest cross-validated MSE; alpha_1se is the largest penalty "
            "within one standard error of it. The model uses the penalty named by lambda_rule.",
            "",
        ]
    )

    for name, coef_df in coefficients.items():
        lines.extend([f"## Feature set: {name}", ""])
        _figure(lines, figures_dir, f"lasso_cv_{name}.png", f"Cross-validation ({name})", report_dir)

        if coef_df.empty:
            lines.extend(["The selected penalty keeps no terms.", ""])
            continue

        coef_df = coef_df.assign(coefficient=pd.to_numeric(coef_df["coefficient"]).astype(float))
        positive = coef_df[coef_df["coefficient"] > 0].nlargest(TOP_TERMS, "coefficient")
        negative = coef_df[coef_df["coefficient"] < 0].nsmallest(TOP_TERMS, "coefficient")
        if not positive.empty:
            lines.extend(["Terms associated with higher ratings:", ""])
            lines.extend(_code_block(positive[["term", "coefficient"]]))
        if not negative.empty:
            lines.extend(["Terms associated with lower ratings:", ""])
            lines.extend(_code_block(negative[["term", "coefficient"]]))

        _figure(lines, figures_dir, f"lasso_coefficients_{name}.png", f"Coefficients ({name})", report_dir)
        _figure(lines, figures_dir, f"wordcloud_{name}.png", f"Frequent terms ({name})", report_dir)
        for sign in ("positive", "negative"):
            _figure(
                lines,
                figures_dir,
                f"wordcloud_{name}_{sign}.png",
                f"Terms with {sign} coefficients ({name})",
                report_dir,
            )

    return "\n".join(lines).rstrip() + "\n"


def main() -> None:
    documents = _read_table(DOCUMENTS_PATH)
    metrics = _read_table(TABLES_DIR / "lasso_metrics.csv")
    coefficients = {
        name: _read_table(TABLES_DIR / f"lasso_coefficients_{name}.csv") for name in FEATURE_SETS
    }

    report = build_report(documents, metrics, coefficients)
    REPORT_PATH.parent.mkdir(parents=True, exist_ok=True)
    REPORT_PATH.write_text(report, encoding="utf-8")
    print(f"Saved report: {REPORT_PATH}")


if __name__ == "__main__":
    main()
