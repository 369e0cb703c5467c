# irtranscript/runtime.py
# Central home for run-wide settings written by the CLI. Keep stdlib-only.

import os
import json

# --- execution context ---
run_dir = None                 # directory the run was started from
outdir = None                  # where result tables are written
runtime_snapshot = None        # path to .irtranscript.runtime.json

# --- inputs ---
input_table = None             # pre-merged (or pre-classified) TSV
control_dir = None
experiment_dir = None
control_name = None
experiment_name = None
new_name = None
metric = "IRratio"
splice_min = 10
pseudocount = 1e-6

# --- scoring ---
score = None                   # list of score column names
nperms = 100000
seed = None
nested_policy = "duplicate"
steps = "all"

RUNTIME_SNAPSHOT_NAME = ".irtranscript.runtime.json"

_RUNTIME_KEYS = [
    "run_dir", "outdir", "input_table", "control_dir", "experiment_dir", "control_name",
    "experiment_name", "new_name", "metric", "splice_min", "pseudocount",
    "score", "nperms", "seed", "nested_policy", "steps",
]

def _snapshot_path(outdir_override: str | None = None) -> str:
    od = outdir_override or outdir or run_dir or os.getcwd()
    return os.path.join(od, RUNTIME_SNAPSHOT_NAME)

def to_dict() -> dict:
    """Current run settings, keyed as the CLI options that set them."""
    settings = globals()
    return {key: settings[key] for key in _RUNTIME_KEYS}

def save_snapshot(path: str | None = None) -> str:
    """Record the settings of this run next to its result tables."""
    global runtime_snapshot
    from irtranscript import __version__

    record = {"irtranscript_version": __version__, "settings": to_dict()}
    runtime_snapshot = path or _snapshot_path()
    with open(runtime_snapshot, "w", encoding="utf-8") as fh:
        json.dump(record, fh, indent=2, sort_keys=True)
        fh.write("\n")
    return runtime_snapshot
