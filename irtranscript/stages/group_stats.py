from __future__ import annotations

"""
irtranscript.stages.group_stats
-------------------------------

Per-intron statistics between a control and an experiment sample:

- compute_group_means: replicate means + removal of introns sitting at the
  0/1 IRratio boundary in either group
- compute_lfc_z: log2 fold change (experiment over control) and its Z-score
"""

import re
from typing import List

import numpy as np
import pandas as pd
from scipy.stats import zscore


def replicate_columns(df: pd.DataFrame, sample_name: str, metric: str = "IRratio") -> List[str]:
    pattern = re.compile(rf"^{re.escape(sample_name)}_{re.escape(metric)}_rep\d+$")
    return [c for c in df.columns if pattern.match(str(c))]


def avg_column(sample_name: str, metric: str = "IRratio") -> str:
    return f"{sample_name}_{metric}_avg"


def compute_group_means(
    df: pd.DataFrame,
    control_name: str,
    experiment_name: str,
    metric: str = "IRratio",
) -> pd.DataFrame:
    """
    Add {name}_{metric}_avg for both groups and drop boundary introns.

    An intron is removed when, in either group, its replicate minimum is 0 or
    its replicate maximum is 1.
    """
    ctrl_cols = replicate_columns(df, control_name, metric)
    exp_cols = replicate_columns(df, experiment_name, metric)
    if not ctrl_cols:
        raise ValueError(f"No replicate columns found for control: {control_name}")
    if not exp_cols:
        raise ValueError(f"No replicate columns found for experiment: {experiment_name}")

    out = df.copy()
    ctrl = out[ctrl_cols].apply(pd.to_numeric, errors="coerce")
    exp = out[exp_cols].apply(pd.to_numeric, errors="coerce")

    out[avg_column(control_name, metric)] = ctrl.mean(axis=1, skipna=True)
    out[avg_column(experiment_name, metric)] = exp.mean(axis=1, skipna=True)

    keep = (
        (ctrl.min(axis=1) != 0) & (ctrl.max(axis=1) != 1)
        & (exp.min(axis=1) != 0) & (exp.max(axis=1) != 1)
    )
    print(f"[INFO] Boundary filter (min 0 / max 1): kept {int(keep.sum())} of {len(out)} introns.")
    return out.loc[keep]


def compute_lfc_z(
    df: pd.DataFrame,
    control_name: str,
    experiment_name: str,
    new_name: str,
    metric: str = "IRratio",
    pseudocount: float = 1e-6,
) -> pd.DataFrame:
    """Add {new_name}_{metric}_lfc and its across-intron Z-score {new_name}_{metric}_z."""
    exp_avg_col = avg_column(experiment_name, metric)
    ctl_avg_col = avg_column(control_name, metric)
    if exp_avg_col not in df.columns:
        raise ValueError(f"Missing experiment mean column: {exp_avg_col}")
    if ctl_avg_col not in df.columns:
        raise ValueError(f"Missing control mean column: {ctl_avg_col}")

    out = df.copy()
    lfc = np.log2((out[exp_avg_col].astype(float) + pseudocount) / (out[ctl_avg_col].astype(float) + pseudocount))

    out[f"{new_name}_{metric}_lfc"] = lfc
    out[f"{new_name}_{metric}_z"] = zscore(lfc.to_numpy(dtype=float), ddof=1, nan_policy="omit")
    return out
