"""Shared fixtures: small sorted site files for both input formats."""

import matplotlib

matplotlib.use("Agg")

import copy

import pytest

import methdiff_engine.core.config as cfg
from methdiff_engine.core.sites import Site


@pytest.fixture(autouse=True)
def restore_global_config():
    """
    Save the global settings before each test and restore them after, so
    tests mutating the singleton do not interfere with each other.
    """
    original = cfg._global_config
    saved_settings = dict(original.settings)
    saved_formats = copy.deepcopy(original.input_formats)
    yield
    original.settings = saved_settings
    original.input_formats = saved_formats


def make_site(chrom, start, meth, unmeth, strand="+"):
    total = meth + unmeth
    level = meth / total if total else 0.0
    return Site(chrom, start, start + 1, f"CpG:{total}", level, strand, meth, unmeth)


def write_bed_sites(path, rows):
    """Write (chrom, start, meth, unmeth) rows as BED CpG lines."""
    with open(path, "w") as f:
        for chrom, start, meth, unmeth in rows:
            total = meth + unmeth
            level = meth / total if total else 0.0
            f.write(f"{chrom}\t{start}\t{start + 1}\tCpG:{total}\t{level:.6f}\t+\n")
    return str(path)


def write_methcounts_sites(path, rows):
    """Write (chrom, start, meth, unmeth) rows as methcounts lines."""
    with open(path, "w") as f:
        for chrom, start, meth, unmeth in rows:
            total = meth + unmeth
            level = meth / total if total else 0.0
            f.write(f"{chrom}\t{start}\t+\tCpG\t{level:.6f}\t{total}\n")
    return str(path)


ROWS_A = [
    ("chr1", 100, 5, 2),
    ("chr1", 200, 1, 9),
    ("chr1", 300, 0, 0),
    ("chr2", 50, 10, 0),
    ("chr2", 80, 4, 4),
]

ROWS_B = [
    ("chr1", 100, 3, 3),
    ("chr1", 250, 2, 2),
    ("chr1", 300, 6, 1),
    ("chr2", 50, 0, 10),
    ("chr2", 80, 4, 4),
    ("chr3", 10, 1, 1),
]


@pytest.fixture
def bed_pair(tmp_path):
    """Two sorted BED files sharing four positions."""
    return (
        write_bed_sites(tmp_path / "a.bed", ROWS_A),
        write_bed_sites(tmp_path / "b.bed", ROWS_B),
    )


@pytest.fixture
def methcounts_pair(tmp_path):
    """The same datasets as bed_pair in methcounts format."""
    return (
        write_methcounts_sites(tmp_path / "a.meth", ROWS_A),
        write_methcounts_sites(tmp_path / "b.meth", ROWS_B),
    )
