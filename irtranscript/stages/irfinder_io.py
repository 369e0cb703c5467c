from __future__ import annotations

"""
irtranscript.stages.irfinder_io
-------------------------------

Read IRFinder replicate outputs and merge control/experiment samples into
one intron table keyed by `index` (= Chr_Start_End_Name).

- read_irfinder: one sample directory -> {sample}_IRratio_repN / {sample}_SpliceExact_repN
- read_irdir:    control + experiment -> gene/Chr/Start/End + IRratio replicate columns,
                 introns with low SpliceExact removed
"""

import os
import re
from typing import List, Sequence

import pandas as pd


META_COLS_DEFAULT = ("Chr", "Start", "End", "Name")
IRFINDER_METRICS = ("IRratio", "SpliceExact")

# Chr may itself contain "_" (e.g. chrUn_gl000220); Start/End are plain integers.
INDEX_PATTERN = re.compile(r"^(?P<Chr>.+?)_(?P<Start>-?\d+)_(?P<End>-?\d+)_(?P<Name>.*)$")


def _list_replicate_files(dirpath: str) -> List[str]:
    if not os.path.isdir(dirpath):
        raise FileNotFoundError(f"IRFinder directory not found: {dirpath}")
    files = sorted(
        os.path.join(dirpath, f)
        for f in os.listdir(dirpath)
        if os.path.isfile(os.path.join(dirpath, f))
    )
    if not files:
        raise FileNotFoundError(f"No IRFinder result files in: {dirpath}")
    return files


def read_replicate_file(fp: str, meta_cols: Sequence[str], keep_extra_meta: bool = False) -> pd.DataFrame:
    """Read one IRFinder result file and reduce it to index + IRratio + SpliceExact (+ extras)."""
    df = pd.read_csv(fp, sep="\t", header=0)

    missing_meta = [c for c in meta_cols if c not in df.columns]
    if missing_meta:
        raise ValueError(f"File '{fp}' is missing required columns: {', '.join(missing_meta)}")
    missing_needed = [c for c in IRFINDER_METRICS if c not in df.columns]
    if missing_needed:
        raise ValueError(f"File '{fp}' is missing IRFinder columns: {', '.join(missing_needed)}")

    df["index"] = df[list(meta_cols[:4])].astype(str).agg("_".join, axis=1)

    keep = ["index", *IRFINDER_METRICS]
    if keep_extra_meta:
        keep += [c for c in df.columns if c not in keep]
    return df[keep]


def read_irfinder(
    dirpath: str,
    sample_name: str,
    meta_cols: Sequence[str] = META_COLS_DEFAULT,
    keep_extra_meta: bool = False,
) -> pd.DataFrame:
    """
    Read every replicate file of one sample directory (sorted by file name).

    Replicate i (1-based) contributes {sample_name}_IRratio_rep{i} and
    {sample_name}_SpliceExact_rep{i}; replicates are outer-joined on `index`.
    With keep_extra_meta the first file's other columns are kept at the end.
    """
    if not isinstance(sample_name, str) or not sample_name:
        raise ValueError("sample_name must be a non-empty string")
    if len(meta_cols) < 4:
        raise ValueError("meta_cols must name the Chr, Start, End and Name columns")

    files = _list_replicate_files(dirpath)
    print(f"[INFO] Reading {len(files)} replicate file(s) for {sample_name} from {dirpath}")

    base = read_replicate_file(files[0], meta_cols, keep_extra_meta=keep_extra_meta)
    base = base.rename(columns={m: f"{sample_name}_{m}_rep1" for m in IRFINDER_METRICS})
    extra_cols = [c for c in base.columns if c != "index" and not c.startswith(f"{sample_name}_")]

    for i, fp in enumerate(files[1:], start=2):
        rep = read_replicate_file(fp, meta_cols)[["index", *IRFINDER_METRICS]]
        rep = rep.rename(columns={m: f"{sample_name}_{m}_rep{i}" for m in IRFINDER_METRICS})
        base = base.merge(rep, on="index", how="outer", sort=False)

    sample_cols = [c for c in base.columns if c.startswith(f"{sample_name}_")]
    base = base[["index", *sample_cols, *extra_cols]]

    if base["index"].isna().any():
        raise ValueError("Index contains NA; check input files.")
    if base["index"].duplicated().any():
        print(f"[WARN] Duplicate indices found after merge ({sample_name}).")

    return base.reset_index(drop=True)


def parse_intron_index(index: pd.Series) -> pd.DataFrame:
    """Split Chr_Start_End_Name ids into Chr/Start/End/Name columns (Start/End as int)."""
    parts = index.astype(str).str.extract(INDEX_PATTERN)
    bad = parts["Start"].isna() | parts["End"].isna()
    if bad.any():
        examples = ", ".join(index[bad].astype(str).head(3))
        raise ValueError(f"Cannot parse intron index (expected Chr_Start_End_Name): {examples}")
    parts["Start"] = parts["Start"].astype(int)
    parts["End"] = parts["End"].astype(int)
    return parts


def read_irdir(
    control_dir: str,
    experiment_dir: str,
    control_name: str,
    experiment_name: str,
    splice_min: float = 10,
) -> pd.DataFrame:
    """
    Read and merge IRFinder outputs of a control and an experiment sample.

    Introns whose minimum SpliceExact over all replicates (NaN ignored) is
    below splice_min are removed, then the SpliceExact columns are dropped.
    Returns gene, Chr, Start, End, index and the IRratio replicate columns.
    """
    print("#### Fn: Read IRFinder directories ###########")

    ctrl = read_irfinder(control_dir, sample_name=control_name)
    exp = read_irfinder(experiment_dir, sample_name=experiment_name)

    merged = ctrl.merge(exp, on="index", how="inner")
    coords = parse_intron_index(merged["index"])
    merged["gene"] = coords["Name"].str.split("/").str[0]

    splice_cols = [c for c in merged.columns if "SpliceExact" in c]
    if not splice_cols:
        raise ValueError("No SpliceExact columns found in merged table.")
    splice_min_row = merged[splice_cols].apply(pd.to_numeric, errors="coerce").min(axis=1, skipna=True)

    keep = splice_min_row.notna() & (splice_min_row >= splice_min)
    print(f"[INFO] SpliceExact >= {splice_min}: kept {int(keep.sum())} of {len(merged)} introns.")
    merged = merged.loc[keep].drop(columns=splice_cols)
    coords = coords.loc[keep]

    merged["Chr"] = coords["Chr"]
    merged["Start"] = coords["Start"]
    merged["End"] = coords["End"]

    front_cols = ["gene", "Chr", "Start", "End"]
    rest_cols = [c for c in merged.columns if c not in front_cols]
    return merged[front_cols + rest_cols].reset_index(drop=True)
