# irtranscript/deps_check.py
from __future__ import annotations

import importlib.util
from importlib import metadata
from typing import Dict, List, Optional, Tuple


# import name -> minimum version (None: any)
PY_DEPS: Dict[str, Optional[str]] = {
    "numpy": None,
    "pandas": None,
    "scipy": "1.11",   # zscore(nan_policy="omit") with ddof
    "tqdm": None,
}


def _version_tuple(text: str) -> Tuple[int, ...]:
    parts = []
    for piece in text.split(".")[:3]:
        digits = "".join(ch for ch in piece if ch.isdigit())
        if not digits:
            break
        parts.append(int(digits))
    return tuple(parts)


def dependency_problems(deps: Dict[str, Optional[str]] = PY_DEPS) -> List[str]:
    """One line per package that is absent or older than its minimum."""
    problems = [f"{name}: not installed" for name in deps if importlib.util.find_spec(name) is None]
    for name, minimum in deps.items():
        if minimum is None or importlib.util.find_spec(name) is None:
            continue
        try:
            found = metadata.version(name)
        except metadata.PackageNotFoundError:
            continue
        if _version_tuple(found) < _version_tuple(minimum):
            problems.append(f"{name}: found {found}, need >= {minimum}")
    return problems


def require_dependencies() -> None:
    problems = dependency_problems()
    if not problems:
        return

    print("\nERROR: irtranscript cannot start, Python packages are missing or too old:")
    print("\n".join(f"    - {p}" for p in problems))
    print("Install them (pip install -e .) and run again.\n")
    raise SystemExit(2)
