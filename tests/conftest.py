"""
Pytest configuration and shared fixtures.
"""

import pytest
import pandas as pd


@pytest.fixture
def toy_introns():
    """Two genes: G1 holds a parent/nested pair, G2 a single orphan intron."""
    return pd.DataFrame(
        {
            "gene": ["G1", "G1", "G2"],
            "Start": [100, 150, 200],
            "End": [200, 180, 300],
            "index": [
                "chr1_100_200_G1/ENSG1",
                "chr1_150_180_G1/ENSG1",
                "chr1_200_300_G2/ENSG2",
            ],
            "Cell1_IRratio": [0.3, 0.2, 0.5],
            "Cell2_IRratio": [0.4, 0.3, 0.6],
        }
    )


@pytest.fixture
def temp_output_dir(tmp_path):
    """Output directory for result tables."""
    out = tmp_path / "results"
    out.mkdir()
    return out


IRFINDER_HEADER = [
    "Chr", "Start", "End", "Name", "Null", "Strand", "ExcludedBases",
    "Coverage", "IntronDepth", "SpliceLeft", "SpliceRight", "SpliceExact",
    "IRratio", "Warnings",
]


def write_irfinder_file(path, rows):
    """Write an IRFinder-IR-dir style table; rows are (chr, start, end, name, splice_exact, irratio)."""
    records = []
    for chrom, start, end, name, splice_exact, irratio in rows:
        records.append(
            [chrom, start, end, name, 0, "+", 0, 0.5, 3, 10, 10, splice_exact, irratio, "-"]
        )
    pd.DataFrame(records, columns=IRFINDER_HEADER).to_csv(path, sep="\t", index=False)


@pytest.fixture
def irfinder_dirs(tmp_path):
    """Control and experiment directories with two replicates each."""
    ctrl = tmp_path / "ctrl"
    exp = tmp_path / "exp"
    ctrl.mkdir()
    exp.mkdir()

    write_irfinder_file(ctrl / "IRFinder-IR-dir-1.txt", [
        ("chr1", 100, 200, "G1/ENSG1/clean", 20, 0.20),
        ("chr1", 150, 180, "G1/ENSG1/clean", 20, 0.10),
        ("chr2", 200, 300, "G2/ENSG2/clean", 20, 0.40),
        ("chr3", 500, 900, "G3/ENSG3/clean", 3, 0.30),
    ])
    write_irfinder_file(ctrl / "IRFinder-IR-dir-2.txt", [
        ("chr1", 100, 200, "G1/ENSG1/clean", 25, 0.40),
        ("chr1", 150, 180, "G1/ENSG1/clean", 25, 0.30),
        ("chr2", 200, 300, "G2/ENSG2/clean", 25, 0.60),
        ("chr3", 500, 900, "G3/ENSG3/clean", 30, 0.30),
    ])
    write_irfinder_file(exp / "IRFinder-IR-dir-1.txt", [
        ("chr1", 100, 200, "G1/ENSG1/clean", 15, 0.30),
        ("chr1", 150, 180, "G1/ENSG1/clean", 15, 0.20),
        ("chr2", 200, 300, "G2/ENSG2/clean", 15, 0.50),
        ("chr3", 500, 900, "G3/ENSG3/clean", 30, 0.30),
    ])
    write_irfinder_file(exp / "IRFinder-IR-dir-2.txt", [
        ("chr1", 100, 200, "G1/ENSG1/clean", 12, 0.50),
        ("chr1", 150, 180, "G1/ENSG1/clean", 12, 0.40),
        ("chr2", 200, 300, "G2/ENSG2/clean", 12, 0.70),
        ("chr3", 500, 900, "G3/ENSG3/clean", 30, 0.30),
    ])
    return ctrl, exp
