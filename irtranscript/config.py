from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import irtranscript.runtime as rt


@dataclass(frozen=True)
class RunConfig:
    # identity/output
    outdir: Optional[str]
    steps: str

    # inputs (either a table or a pair of IRFinder directories)
    input_table: Optional[str] = None
    control_dir: Optional[str] = None
    experiment_dir: Optional[str] = None
    control_name: Optional[str] = None
    experiment_name: Optional[str] = None
    new_name: Optional[str] = None

    # upstream filters / transforms
    metric: str = "IRratio"
    splice_min: float = 10
    pseudocount: float = 1e-6

    # classification
    nested_policy: str = "duplicate"

    # permutation scoring
    score: Tuple[str, ...] = ()
    nperms: int = 100000
    seed: Optional[int] = None

    @property
    def default_score_column(self) -> Optional[str]:
        if not self.new_name:
            return None
        return f"{self.new_name}_{self.metric}_z"

    @classmethod
    def from_runtime(cls) -> "RunConfig":
        seed = getattr(rt, "seed", None)
        return cls(
            outdir=getattr(rt, "outdir", None),
            steps=str(getattr(rt, "steps", "all") or "all"),
            input_table=getattr(rt, "input_table", None),
            control_dir=getattr(rt, "control_dir", None),
            experiment_dir=getattr(rt, "experiment_dir", None),
            control_name=getattr(rt, "control_name", None),
            experiment_name=getattr(rt, "experiment_name", None),
            new_name=getattr(rt, "new_name", None),
            metric=str(getattr(rt, "metric", "IRratio") or "IRratio"),
            splice_min=float(getattr(rt, "splice_min", 10)),
            pseudocount=float(getattr(rt, "pseudocount", 1e-6)),
            nested_policy=str(getattr(rt, "nested_policy", "duplicate") or "duplicate"),
            score=tuple(getattr(rt, "score", None) or ()),
            nperms=int(getattr(rt, "nperms", 100000) or 100000),
            seed=int(seed) if seed is not None else None,
        )
