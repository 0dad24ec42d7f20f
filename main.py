"""
Main script to run the full Yelp tip LASSO pipeline.

This script runs all steps in order:
1) Data loading (business ratings + tips)
2) Corpus cleaning
3) Document-term matrices (unigrams and bigrams)
4) LASSO regression with cross-validation
5) Visualization
6) Markdown report

All outputs will be saved to the outputs/ folder.
"""

import subprocess
import sys

print("Starting Yelp tip LASSO pipeline...\n")

steps = [
    ("Data loading", [sys.executable, "src/data_loader.py"]),
    ("Corpus cleaning", [sys.executable, "src/preprocess.py"]),
    ("Document-term matrices", [sys.executable, "src/term_matrix.py"]),
    ("LASSO regression", [sys.executable, "src/lasso_regression.py"]),
    ("Visualization", [sys.executable, "src/visualize.py"]),
    ("Report", [sys.executable, "src/report.py"]),
]

for name, command in steps:
    print(f"Running step: {name}")
    print(f"Command: {' '.join(command)}")
    result = subprocess.run(command)

    if result.returncode != 0:
        print(f"\nError occurred during step: {name}")
        print("Pipeline stopped.")
        sys.exit(1)

    print(f"Finished step: {name}\n")

print("Pipeline completed successfully.\n")
print("Results saved in:")
print("- outputs/tables/")
print("- outputs/figures/")
print("- outputs/report.md")
