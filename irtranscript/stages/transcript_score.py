from __future__ import annotations

"""
irtranscript.stages.transcript_score
------------------------------------

Transcript-level intron retention scoring by permutation.

For every gene the intron scores are collapsed into one observed median:
each intron cluster (Parent + its Nested introns) counts once, through its own
median, and every Orphan counts once. The observation is compared against a
null of medians of `num` scores drawn at random (with replacement) from all
introns of the table.

Monte Carlo protocol per gene:
  FIRST_PASS  -> draws of size num (cluster-collapsed count)
                 pval_low != 0 -> RESOLVED
                 pval_low == 0 -> SECOND_PASS
  SECOND_PASS -> draws of size num_intron (raw row count) -> RESOLVED

Design constraints:
- every gene yields exactly one row; non-finite z/sd are kept as-is
- score columns are processed independently (no shared cache)
- one numpy Generator per call: a fixed seed reproduces the whole call
"""

import enum
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from tqdm import tqdm

from irtranscript.ids import ORPHAN_CLUSTER
from irtranscript.stages.nested_intron import CLUSTER_COL, NESTED_COL, require_columns, warn_missing_genes
from irtranscript.stages.output import write_result_table


DEFAULT_NPERMS = 100000
DEFAULT_METRIC = "IRratio"

# Upper bound on draws materialised at once (nperms x num cells).
MAX_DRAW_CELLS = 2_000_000


def result_columns(metric: str = DEFAULT_METRIC) -> List[str]:
    return [
        "gene",
        f"obs.{metric}",
        f"exp.{metric}",
        "pval_low",
        "pval_high",
        "sd",
        "z_score",
        "num_intron",
        "num_intron_without_nested",
    ]


class PassState(enum.Enum):
    FIRST_PASS = "first_pass"
    SECOND_PASS = "second_pass"
    RESOLVED = "resolved"


def next_state(state: PassState, pval_low: float) -> PassState:
    if state is PassState.FIRST_PASS:
        return PassState.SECOND_PASS if pval_low == 0 else PassState.RESOLVED
    return PassState.RESOLVED


@dataclass(frozen=True)
class NullSummary:
    expected: float
    pval_low: float
    pval_high: float
    sd: float
    z_score: float


@dataclass(frozen=True)
class GeneScore:
    gene: object
    observed: float
    summary: NullSummary
    num_intron: int
    num: int
    passes: int

    def as_row(self) -> list:
        s = self.summary
        return [
            self.gene, self.observed, s.expected, s.pval_low, s.pval_high,
            s.sd, s.z_score, self.num_intron, self.num,
        ]


def observed_statistic(scores: np.ndarray, cluster_ids: np.ndarray) -> Tuple[float, int]:
    """
    Cluster-aware observed median for one gene.

    Returns (observed, num) where num is the number of values the median was
    taken over: one per cluster plus one per orphan, or every row when the
    gene has no cluster.
    """
    scores = np.asarray(scores, dtype=float)
    cluster_ids = np.asarray(cluster_ids, dtype=object)

    clustered = cluster_ids != ORPHAN_CLUSTER
    if not clustered.any():
        return float(np.median(scores)), int(scores.size)

    cluster_medians = [
        np.median(scores[cluster_ids == cid]) for cid in pd.unique(cluster_ids[clustered])
    ]
    values = np.concatenate([scores[~clustered], np.asarray(cluster_medians, dtype=float)])
    return float(np.median(values)), int(values.size)


def permuted_medians(
    pool: np.ndarray,
    num: int,
    nperms: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """Medians of `nperms` draws of `num` values taken with replacement from pool."""
    medians = np.empty(nperms, dtype=float)
    rows_per_block = max(1, MAX_DRAW_CELLS // max(int(num), 1))
    for start in range(0, nperms, rows_per_block):
        stop = min(start + rows_per_block, nperms)
        draws = rng.choice(pool, size=(stop - start, int(num)), replace=True)
        medians[start:stop] = np.median(draws, axis=1)
    return medians


def summarize_null(observed: float, perms: np.ndarray) -> NullSummary:
    n = perms.size
    with np.errstate(divide="ignore", invalid="ignore"):
        expected = float(np.mean(perms))
        sd = float(np.std(perms, ddof=1)) if n > 1 else float("nan")
        z = np.divide(np.float64(observed) - expected, sd)
    return NullSummary(
        expected=expected,
        pval_low=np.count_nonzero(perms <= observed) / n,
        pval_high=np.count_nonzero(perms >= observed) / n,
        sd=sd,
        z_score=float(z),
    )


def score_gene(
    gene,
    scores: np.ndarray,
    cluster_ids: np.ndarray,
    pool: np.ndarray,
    nperms: int,
    rng: np.random.Generator,
) -> GeneScore:
    """Run the two-pass Monte Carlo protocol for one gene."""
    observed, num = observed_statistic(scores, cluster_ids)
    num_intron = int(len(scores))

    state = PassState.FIRST_PASS
    draw_size = num
    passes = 0
    summary = None
    while state is not PassState.RESOLVED:
        perms = permuted_medians(pool, draw_size, nperms, rng)
        summary = summarize_null(observed, perms)
        passes += 1
        state = next_state(state, summary.pval_low)
        if state is PassState.SECOND_PASS:
            draw_size = num_intron

    return GeneScore(
        gene=gene,
        observed=observed,
        summary=summary,
        num_intron=num_intron,
        num=num,
        passes=passes,
    )


def score_column(
    df: pd.DataFrame,
    score_col: str,
    nperms: int = DEFAULT_NPERMS,
    rng: Optional[np.random.Generator] = None,
    metric: str = DEFAULT_METRIC,
) -> pd.DataFrame:
    """Per-gene permutation results for one score column (no file output)."""
    if rng is None:
        rng = np.random.default_rng()

    work = pd.DataFrame(
        {
            "gene": df["gene"].to_numpy(),
            "score": pd.to_numeric(df[score_col], errors="coerce").to_numpy(dtype=float),
            "cluster": df[CLUSTER_COL].astype(str).str.strip().to_numpy(dtype=object),
        }
    )
    pool = work["score"].to_numpy()

    warn_missing_genes(work, score_col)
    grouped = work.groupby("gene", sort=True)
    rows = []
    n_rerun = 0
    for gene, gene_df in tqdm(grouped, total=grouped.ngroups, desc=f"Permuting {score_col}", unit="gene"):
        res = score_gene(
            gene,
            gene_df["score"].to_numpy(),
            gene_df["cluster"].to_numpy(),
            pool,
            nperms,
            rng,
        )
        if res.passes > 1:
            n_rerun += 1
        rows.append(res.as_row())

    if n_rerun:
        print(f"[INFO] {score_col}: {n_rerun} gene(s) re-permuted with the raw intron count (pval_low was 0).")

    out = pd.DataFrame(rows, columns=result_columns(metric))
    out["num_intron"] = out["num_intron"].astype(int)
    out["num_intron_without_nested"] = out["num_intron_without_nested"].astype(int)
    return out


def irtranscript(
    df: pd.DataFrame,
    score: Union[str, Sequence[str]],
    save_dir: Optional[str],
    nperms: int = DEFAULT_NPERMS,
    seed: Optional[int] = None,
    metric: str = DEFAULT_METRIC,
) -> Dict[str, pd.DataFrame]:
    """
    Score every gene of a classified intron table, once per score column.

    df must already carry `Nested` and `Intron_cluster` (see nested_intron).
    Writes <save_dir>/<score>_irTranscript.txt for every score column and
    returns {score: result DataFrame}.
    """
    scores = [score] if isinstance(score, str) else list(score)

    require_columns(df, [NESTED_COL, CLUSTER_COL], what="Input df (run nested_intron(df) first)")
    require_columns(df, ["gene"], what="Input df")
    require_columns(df, scores, what="Input df (score columns)")
    if int(nperms) < 1:
        raise ValueError(f"nperms must be >= 1 (got {nperms})")

    print("#### Fn: Transcript-level permutation scores ##")

    rng = np.random.default_rng(seed)
    results: Dict[str, pd.DataFrame] = {}
    for zs in scores:
        print(f"[INFO] Scoring column {zs} with {int(nperms)} permutations")
        res = score_column(df, zs, nperms=int(nperms), rng=rng, metric=metric)
        write_result_table(res, save_dir, zs)
        results[zs] = res
    return results
