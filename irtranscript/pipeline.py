# irtranscript/pipeline.py
from __future__ import annotations

"""
Orchestrator that sequences the stages of one run:

1) input          -> -input table, or IRFinder dirs (read_irdir -> group means -> lfc/z)
2) nested_intron  -> Parent/Nested/Orphan labels + intron clusters
3) transcript     -> one <score>_irTranscript.txt per score column

-steps classify stops after 2) and writes nested_introns.tsv;
-steps score starts at 3) from an already classified -input table.
"""

from typing import List, Optional

import pandas as pd

from irtranscript.config import RunConfig
from irtranscript.stages import group_stats as st_group_stats
from irtranscript.stages import irfinder_io as st_irfinder_io
from irtranscript.stages import nested_intron as st_nested
from irtranscript.stages import output as st_output
from irtranscript.stages import transcript_score as st_transcript


def load_input_table(cfg: RunConfig) -> pd.DataFrame:
    if cfg.input_table:
        print(f"[INFO] Loading intron table {cfg.input_table}")
        return st_output.read_table(cfg.input_table)

    df = st_irfinder_io.read_irdir(
        cfg.control_dir,
        cfg.experiment_dir,
        control_name=cfg.control_name,
        experiment_name=cfg.experiment_name,
        splice_min=cfg.splice_min,
    )
    df = st_group_stats.compute_group_means(
        df, cfg.control_name, cfg.experiment_name, metric=cfg.metric
    )
    if cfg.new_name:
        df = st_group_stats.compute_lfc_z(
            df,
            cfg.control_name,
            cfg.experiment_name,
            cfg.new_name,
            metric=cfg.metric,
            pseudocount=cfg.pseudocount,
        )
    return df


def resolve_score_columns(cfg: RunConfig) -> List[str]:
    if cfg.score:
        return list(cfg.score)
    if cfg.default_score_column:
        print(f"[INFO] No -score given; using {cfg.default_score_column}")
        return [cfg.default_score_column]
    raise ValueError("No score column to test: pass -score (or -new_name with IRFinder directories).")


def run_pipeline(cfg: Optional[RunConfig] = None) -> int:
    print("######        Starting irtranscript run        #########")

    if cfg is None:
        cfg = RunConfig.from_runtime()

    table = load_input_table(cfg)

    if cfg.steps in ("all", "classify"):
        classified = st_nested.nested_intron(table, nested_policy=cfg.nested_policy)
        if cfg.steps == "classify":
            st_output.write_classified_table(classified, cfg.outdir)
            return 0
    else:
        classified = table

    scores = resolve_score_columns(cfg)
    st_transcript.irtranscript(
        classified,
        scores,
        cfg.outdir,
        nperms=cfg.nperms,
        seed=cfg.seed,
        metric=cfg.metric,
    )
    return 0
