"""
Tests for the command line interface and the pipeline it drives.
"""

import json

import pandas as pd
import pytest

import irtranscript.runtime as rt
from irtranscript.cli import build_parser, main
from irtranscript import deps_check
from irtranscript.config import RunConfig
from irtranscript.pipeline import resolve_score_columns


class TestCLIBasics:
    """Parser defaults and argument validation."""

    def test_defaults(self):
        args = build_parser().parse_args(["-input", "t.tsv"])

        assert args.nperms == 100000
        assert args.steps == "all"
        assert args.nested_policy == "duplicate"
        assert args.metric == "IRratio"
        assert args.seed is None

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["-version"])

        assert exc.value.code == 0
        assert "irtranscript" in capsys.readouterr().out

    def test_invalid_steps(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["-input", "t.tsv", "-steps", "nope", "--outdir", str(tmp_path)])

        assert exc.value.code == 2

    def test_missing_input(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["-control_dir", "c", "--outdir", str(tmp_path)])

        assert exc.value.code == 2

    def test_score_step_needs_input_table(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main([
                "-control_dir", "c", "-experiment_dir", "e",
                "-control_name", "c", "-experiment_name", "e",
                "-steps", "score", "--outdir", str(tmp_path),
            ])

        assert exc.value.code == 2

    def test_no_score_column_rejected_before_run(self, toy_introns, tmp_path, capsys):
        table = tmp_path / "introns.tsv"
        toy_introns.to_csv(table, sep="\t", index=False)

        with pytest.raises(SystemExit) as exc:
            main(["-input", str(table), "-nperms", "5", "--outdir", str(tmp_path / "out")])

        assert exc.value.code == 2
        out = capsys.readouterr().out
        assert "ERROR: Give -score" in out
        assert "Nested introns" not in out

    def test_classify_step_needs_no_score(self, toy_introns, tmp_path):
        table = tmp_path / "introns.tsv"
        toy_introns.to_csv(table, sep="\t", index=False)

        assert main(["-input", str(table), "-steps", "classify", "--outdir", str(tmp_path / "out")]) == 0


class TestPipelineRuns:
    """End-to-end runs through main()."""

    def test_table_input_two_scores(self, toy_introns, tmp_path):
        table = tmp_path / "introns.tsv"
        toy_introns.to_csv(table, sep="\t", index=False)
        outdir = tmp_path / "out"

        code = main([
            "-input", str(table),
            "-score", "Cell1_IRratio", "Cell2_IRratio",
            "-nperms", "50", "-seed", "1",
            "--outdir", str(outdir),
        ])

        assert code == 0
        for col in ("Cell1_IRratio", "Cell2_IRratio"):
            res = pd.read_csv(outdir / f"{col}_irTranscript.txt", sep="\t")
            assert len(res) == 2
            assert {"gene", "obs.IRratio", "z_score"}.issubset(res.columns)

        snapshot = json.loads((outdir / rt.RUNTIME_SNAPSHOT_NAME).read_text())
        assert snapshot["settings"]["nperms"] == 50
        assert snapshot["settings"]["score"] == ["Cell1_IRratio", "Cell2_IRratio"]
        assert snapshot["irtranscript_version"]

    def test_classify_then_score(self, toy_introns, tmp_path):
        table = tmp_path / "introns.tsv"
        toy_introns.to_csv(table, sep="\t", index=False)
        outdir = tmp_path / "out"

        assert main(["-input", str(table), "-steps", "classify", "--outdir", str(outdir)]) == 0
        classified = outdir / "nested_introns.tsv"
        labels = pd.read_csv(classified, sep="\t")
        assert list(labels["Nested"]) == ["Parent", "Nested", "Orphan"]
        assert list(labels["Intron_cluster"].astype(str)) == ["2", "2", "none"]

        assert main([
            "-input", str(classified), "-steps", "score",
            "-score", "Cell1_IRratio", "-nperms", "30", "-seed", "2",
            "--outdir", str(outdir),
        ]) == 0
        res = pd.read_csv(outdir / "Cell1_IRratio_irTranscript.txt", sep="\t")
        assert list(res["num_intron_without_nested"]) == [1, 1]

    def test_irfinder_input_default_score(self, irfinder_dirs, tmp_path):
        ctrl, exp = irfinder_dirs
        outdir = tmp_path / "out"

        code = main([
            "-control_dir", str(ctrl), "-experiment_dir", str(exp),
            "-control_name", "ctrl", "-experiment_name", "exp",
            "-new_name", "snaR", "-nperms", "40", "-seed", "3",
            "--outdir", str(outdir),
        ])

        assert code == 0
        res = pd.read_csv(outdir / "snaR_IRratio_z_irTranscript.txt", sep="\t")
        assert list(res["gene"]) == ["G1", "G2"]
        assert list(res["num_intron"]) == [2, 1]


class TestRunConfig:
    """Score-column resolution."""

    def test_explicit_scores_win(self):
        cfg = RunConfig(outdir=None, steps="all", new_name="snaR", score=("a", "b"))

        assert resolve_score_columns(cfg) == ["a", "b"]

    def test_default_from_new_name(self):
        cfg = RunConfig(outdir=None, steps="all", new_name="snaR", metric="IRratio")

        assert resolve_score_columns(cfg) == ["snaR_IRratio_z"]

    def test_no_score_available(self):
        cfg = RunConfig(outdir=None, steps="all")

        with pytest.raises(ValueError, match="score"):
            resolve_score_columns(cfg)


class TestDependencyCheck:
    """Startup check of the Python packages."""

    def test_installed_stack_passes(self):
        assert deps_check.dependency_problems() == []

    def test_absent_package_reported(self):
        problems = deps_check.dependency_problems({"numpy": None, "no_such_pkg_xyz": None})

        assert problems == ["no_such_pkg_xyz: not installed"]

    def test_too_old_version_reported(self, monkeypatch):
        monkeypatch.setattr(deps_check.metadata, "version", lambda name: "1.2.0")

        problems = deps_check.dependency_problems({"scipy": "1.11"})

        assert problems == ["scipy: found 1.2.0, need >= 1.11"]

    def test_require_dependencies_exits(self, monkeypatch, capsys):
        monkeypatch.setattr(deps_check, "dependency_problems", lambda: ["tqdm: not installed"])

        with pytest.raises(SystemExit) as exc:
            deps_check.require_dependencies()

        assert exc.value.code == 2
        assert "tqdm: not installed" in capsys.readouterr().out
