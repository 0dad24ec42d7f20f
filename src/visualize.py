"""Figures for the tip-text LASSO study: ratings, word clouds, CV curve, coefficients."""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from wordcloud import WordCloud

from term_matrix import FEATURE_SETS

DOCUMENTS_PATH = Path("data/processed/documents.csv")
TABLES_DIR = Path("outputs/tables")
FIGURES_DIR = Path("outputs/figures")
WORD_CLOUD_TERMS = 100
TOP_COEFFICIENTS = 15


def plot_star_distribution(documents: pd.DataFrame, output_path: Path) -> None:
    plt.figure(figsize=(8, 5))
    sns.histplot(documents["stars"], bins=np.arange(0.75, 5.5, 0.5), color="steelblue")
    plt.title("Star Rating Distribution")
    plt.xlabel("Stars")
    plt.ylabel("Documents")
    plt.tight_layout()
    plt.savefig(output_path, dpi=300)
    plt.close()


def plot_word_cloud(
    frequencies: dict[str, float],
    output_path: Path,
    *,
    title: str,
    colormap: str = "viridis",
) -> None:
    """Render a word cloud sized by the given (positive) weights."""
    frequencies = {term: float(weight) for term, weight in frequencies.items() if weight > 0}
    if not frequencies:
        raise ValueError(f"No positive weights to draw for '{title}'")

    cloud = WordCloud(
        width=800,
        height=400,
        background_color="white",
        colormap=colormap,
        random_state=42,
    ).generate_from_frequencies(frequencies)

    plt.figure(figsize=(10, 5))
    plt.imshow(cloud, interpolation="bilinear")
    plt.axis("off")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(output_path, dpi=300)
    plt.close()


def plot_cv_curve(
    cv_path: pd.DataFrame,
    output_path: Path,
    *,
    alpha_min: float,
    alpha_1se: float,
    title: str,
) -> None:
    """Mean CV error with one-standard-error bars against log(alpha)."""
    log_alpha = np.log(cv_path["alpha"])

    plt.figure(figsize=(8, 5))
    plt.errorbar(
        log_alpha,
        cv_path["mean_mse"],
        yerr=cv_path["std_error"],
        fmt="o",
        color="indianred",
        ecolor="lightgray",
        markersize=3,
    )
    plt.axvline(np.log(alpha_min), linestyle="--", color="black", label="min")
    plt.axvline(np.log(alpha_1se), linestyle=":", color="black", label="1se")
    plt.title(title)
    plt.xlabel("log(alpha)")
    plt.ylabel("Mean squared error")
    plt.legend()
    plt.tight_layout()
    plt.savefig(output_path, dpi=300)
    plt.close()


def plot_coefficients(
    coefficients: pd.DataFrame,
    output_path: Path,
    *,
    title: str,
    top_n: int = TOP_COEFFICIENTS,
) -> None:
    coefficients = coefficients.assign(coefficient=pd.to_numeric(coefficients["coefficient"]).astype(float))
    positive = coefficients[coefficients["coefficient"] > 0].nlargest(top_n, "coefficient")
    negative = coefficients[coefficients["coefficient"] < 0].nsmallest(top_n, "coefficient")
    plot_df = pd.concat([positive, negative]).sort_values("coefficient")
    if plot_df.empty:
        raise ValueError(f"No non-zero coefficients to plot for '{title}'")

    colors = ["indianred" if value < 0 else "steelblue" for value in plot_df["coefficient"]]
    plt.figure(figsize=(8, max(4, 0.3 * len(plot_df))))
    plt.barh(plot_df["term"].astype(str), plot_df["coefficient"], color=colors)
    plt.axvline(0, color="black", linewidth=0.8)
    plt.title(title)
    plt.xlabel("Coefficient (stars per occurrence)")
    plt.ylabel("Term")
    plt.tight_layout()
    plt.savefig(output_path, dpi=300)
    plt.close()


def _read_table(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"Input table not found: {path}")
    return pd.read_csv(path, keep_default_na=False)


def main() -> None:
    FIGURES_DIR.mkdir(parents=True, exist_ok=True)
    sns.set_theme(style="whitegrid")

    print("Loading documents...")
    documents = _read_table(DOCUMENTS_PATH)
    star_path = FIGURES_DIR / "star_distribution.png"
    plot_star_distribution(documents, star_path)
    print(f"Saved figure: {star_path}")

    metrics = _read_table(TABLES_DIR / "lasso_metrics.csv").set_index("feature_set")

    for name in FEATURE_SETS:
        frequencies = _read_table(TABLES_DIR / f"term_frequencies_{name}.csv").head(WORD_CLOUD_TERMS)
        cloud_path = FIGURES_DIR / f"wordcloud_{name}.png"
        plot_word_cloud(
            dict(zip(frequencies["term"].astype(str), frequencies["frequency"])),
            cloud_path,
            title=f"Most Frequent Terms ({name})",
        )
        print(f"Saved figure: {cloud_path}")

        cv_path = _read_table(TABLES_DIR / f"lasso_cv_path_{name}.csv")
        cv_fig_path = FIGURES_DIR / f"lasso_cv_{name}.png"
        plot_cv_curve(
            cv_path,
            cv_fig_path,
            alpha_min=float(metrics.loc[name, "alpha_min"]),
            alpha_1se=float(metrics.loc[name, "alpha_1se"]),
            title=f"LASSO Cross-Validation ({name})",
        )
        print(f"Saved figure: {cv_fig_path}")

        coefficients = _read_table(TABLES_DIR / f"lasso_coefficients_{name}.csv")
        if coefficients.empty:
            print(f"No non-zero coefficients for {name}; skipping coefficient figures.")
            continue

        coef_path = FIGURES_DIR / f"lasso_coefficients_{name}.png"
        plot_coefficients(coefficients, coef_path, title=f"Top LASSO Coefficients ({name})")
        print(f"Saved figure: {coef_path}")

        signed_groups = (
            ("positive", "Blues", coefficients["coefficient"] > 0),
            ("negative", "Reds", coefficients["coefficient"] < 0),
        )
        for sign, colormap, mask in signed_groups:
            weights = coefficients[mask]
            if weights.empty:
                continue
            sign_path = FIGURES_DIR / f"wordcloud_{name}_{sign}.png"
            plot_word_cloud(
                dict(zip(weights["term"].astype(str), weights["coefficient"].abs())),
                sign_path,
                title=f"Terms with {sign} coefficients ({name})",
                colormap=colormap,
            )
            print(f"Saved figure: {sign_path}")

    print("Done generating figures.")


if __name__ == "__main__":
    main()
