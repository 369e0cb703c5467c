from __future__ import annotations

"""
irtranscript.stages.nested_intron
---------------------------------

Classify the introns of every gene as Parent, Nested or Orphan from their
coordinates, and give each Parent (plus the Nested introns inside it) an
intron-cluster id.

Rules, per gene:
- Nested: some other intron of the gene spans it (Start_j <= Start_i, End_j >= End_i).
- Parent: not Nested, and it spans at least one other intron.
- Orphan: everything else.

Output rows are regrouped: genes in sorted order; inside a gene each cluster
(Parent first, then its Nested introns in table order), then the Orphans.

Design constraints:
- pure stage: does NOT write files
- cluster ids come from an explicit ClusterCounter (fresh per call by default)
"""

from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from irtranscript.ids import ORPHAN_CLUSTER, ClusterCounter


REQUIRED_INTERVAL_COLS: List[str] = ["gene", "Start", "End"]

NESTED_COL = "Nested"
CLUSTER_COL = "Intron_cluster"

LABEL_PARENT = "Parent"
LABEL_NESTED = "Nested"
LABEL_ORPHAN = "Orphan"

NESTED_POLICIES = ("duplicate", "smallest")


def require_columns(df: pd.DataFrame, required: Iterable[str], what: str = "Input df") -> None:
    """Raise ValueError listing every column of `required` missing from df."""
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"{what} is missing required columns: {', '.join(missing)}")


def warn_missing_genes(df: pd.DataFrame, stage: str) -> int:
    """Report rows whose gene is missing; groupby leaves them out."""
    n_missing = int(df["gene"].isna().sum())
    if n_missing:
        print(f"[WARN] {stage}: {n_missing} row(s) with a missing gene were left out.")
    return n_missing


def _coords(gene_df: pd.DataFrame) -> Tuple[np.ndarray, np.ndarray]:
    starts = pd.to_numeric(gene_df["Start"], errors="coerce").to_numpy(dtype=float)
    ends = pd.to_numeric(gene_df["End"], errors="coerce").to_numpy(dtype=float)
    return starts, ends


def containment_matrices(starts: np.ndarray, ends: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Pairwise containment for one gene.

    containing[i, j] is True when interval j spans interval i;
    contained[i, j] is True when interval i spans interval j.
    The diagonal is True for well-formed coordinates.
    """
    s = np.asarray(starts, dtype=float)
    e = np.asarray(ends, dtype=float)
    containing = (s[None, :] <= s[:, None]) & (e[None, :] >= e[:, None])
    contained = (s[None, :] >= s[:, None]) & (e[None, :] <= e[:, None])
    return containing, contained


def classify_intervals(starts: Sequence[float], ends: Sequence[float]) -> np.ndarray:
    """Return the Parent/Nested/Orphan label of every interval (Nested > Parent > Orphan)."""
    containing, contained = containment_matrices(np.asarray(starts), np.asarray(ends))
    n_containing = containing.sum(axis=1)
    n_contained = contained.sum(axis=1)
    return np.where(
        n_containing > 1,
        LABEL_NESTED,
        np.where(n_contained > 1, LABEL_PARENT, LABEL_ORPHAN),
    ).astype(object)


def _smallest_parent_owner(
    starts: np.ndarray,
    ends: np.ndarray,
    parent_idx: np.ndarray,
    nested_idx: np.ndarray,
) -> dict:
    """nested position -> position of its smallest enclosing Parent (first in row order on ties)."""
    owner = {}
    for n in nested_idx:
        best = None
        best_span = None
        for p in parent_idx:
            if starts[n] >= starts[p] and ends[n] <= ends[p]:
                span = ends[p] - starts[p]
                if best is None or span < best_span:
                    best, best_span = p, span
        if best is not None:
            owner[int(n)] = int(best)
    return owner


def assign_gene_clusters(
    gene_df: pd.DataFrame,
    counter: ClusterCounter,
    nested_policy: str = "duplicate",
) -> Tuple[pd.DataFrame, int]:
    """
    Label one gene's introns and lay them out cluster by cluster.

    Returns (rows, n_unplaced) where n_unplaced counts Nested introns that no
    Parent of the gene spans (they cannot join a cluster and are left out).
    """
    starts, ends = _coords(gene_df)
    labels = classify_intervals(starts, ends)

    parent_idx = np.flatnonzero(labels == LABEL_PARENT)
    nested_idx = np.flatnonzero(labels == LABEL_NESTED)
    orphan_idx = np.flatnonzero(labels == LABEL_ORPHAN)

    owner = None
    if nested_policy == "smallest":
        owner = _smallest_parent_owner(starts, ends, parent_idx, nested_idx)

    positions: List[int] = []
    cluster_ids: List[str] = []
    placed = set()

    for p in parent_idx:
        cid = counter.next_id()
        inside = nested_idx[(starts[nested_idx] >= starts[p]) & (ends[nested_idx] <= ends[p])]
        if owner is not None:
            inside = np.array([n for n in inside if owner.get(int(n)) == int(p)], dtype=int)

        positions.append(int(p))
        cluster_ids.append(cid)
        for n in inside:
            positions.append(int(n))
            cluster_ids.append(cid)
            placed.add(int(n))

    for o in orphan_idx:
        positions.append(int(o))
        cluster_ids.append(ORPHAN_CLUSTER)

    n_unplaced = len(nested_idx) - len(placed)

    out = gene_df.iloc[positions].copy()
    out[NESTED_COL] = labels[positions] if positions else []
    out[CLUSTER_COL] = cluster_ids
    return out, n_unplaced


def nested_intron(
    df: pd.DataFrame,
    counter: Optional[ClusterCounter] = None,
    nested_policy: str = "duplicate",
) -> pd.DataFrame:
    """
    Classify introns per gene and assign intron-cluster ids.

    df must hold `gene`, `Start` and `End`; other columns travel along.
    Returns a new DataFrame (regrouped, fresh index) with two extra columns:
      - Nested: "Parent" | "Nested" | "Orphan"
      - Intron_cluster: cluster id as a string, "none" for orphans

    nested_policy:
      - "duplicate" (default): a Nested intron inside several Parents is
        emitted once per Parent, each copy with that Parent's id.
      - "smallest": it is emitted once, in its smallest enclosing Parent.

    counter: share one ClusterCounter between calls to keep ids unique across
    them; by default every call numbers its clusters from scratch.
    """
    require_columns(df, REQUIRED_INTERVAL_COLS)
    if nested_policy not in NESTED_POLICIES:
        raise ValueError(f"Unknown nested_policy: {nested_policy!r} (use one of {NESTED_POLICIES})")

    print("#### Fn: Nested introns #######################")

    if counter is None:
        counter = ClusterCounter()

    base = df.drop(columns=[c for c in (NESTED_COL, CLUSTER_COL) if c in df.columns])

    pieces: List[pd.DataFrame] = []
    n_unplaced = 0
    warn_missing_genes(base, "nested_intron")
    for _, gene_df in base.groupby("gene", sort=True):
        rows, unplaced = assign_gene_clusters(gene_df, counter, nested_policy=nested_policy)
        pieces.append(rows)
        n_unplaced += unplaced

    if n_unplaced:
        print(f"[WARN] {n_unplaced} nested intron(s) have no enclosing Parent in their gene; left out of the output.")

    if not pieces:
        out = base.iloc[0:0].copy()
        out[NESTED_COL] = pd.Series(dtype=object)
        out[CLUSTER_COL] = pd.Series(dtype=object)
        return out.reset_index(drop=True)

    out = pd.concat(pieces, ignore_index=True)
    n_clusters = out.loc[out[CLUSTER_COL] != ORPHAN_CLUSTER, CLUSTER_COL].nunique()
    print(f"[INFO] Classified {len(out)} intron rows into {int(n_clusters)} clusters.")
    return out
