"""irtranscript.stages.output

Writers for the tables a run leaves behind:
- one <score>_irTranscript.txt per score column (permutation results)
- nested_introns.tsv when the run stops after classification

Tables are tab-separated with a header row and no index. Missing/undefined
numbers are written as NaN so they read back as floats.
"""

from __future__ import annotations

import os

import pandas as pd


RESULT_SUFFIX = "_irTranscript.txt"
CLASSIFIED_TABLE_NAME = "nested_introns.tsv"
NA_REP = "NaN"


def _join_outdir(dirpath: str | None, name: str) -> str:
    if not dirpath:
        return name
    return os.path.join(dirpath, name)


def result_table_path(save_dir: str | None, score_col: str) -> str:
    return _join_outdir(save_dir, f"{score_col}{RESULT_SUFFIX}")


def write_result_table(result: pd.DataFrame, save_dir: str | None, score_col: str) -> str:
    """Write one score column's per-gene results; returns the file path."""
    if save_dir:
        os.makedirs(save_dir, exist_ok=True)
    path = result_table_path(save_dir, score_col)
    result.to_csv(path, sep="\t", index=False, header=True, na_rep=NA_REP)
    print(f"Transcript-level scores for {score_col} written to {path}")
    return path


def write_classified_table(classified: pd.DataFrame, outdir: str | None, name: str = CLASSIFIED_TABLE_NAME) -> str:
    if outdir:
        os.makedirs(outdir, exist_ok=True)
    path = _join_outdir(outdir, name)
    classified.to_csv(path, sep="\t", index=False, header=True, na_rep=NA_REP)
    print(f"Classified introns written to {path}")
    return path


def read_table(path: str) -> pd.DataFrame:
    """Read a tab-separated table written by this package (or a user-supplied one)."""
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Input table not found: {path}")
    return pd.read_csv(path, sep="\t")
