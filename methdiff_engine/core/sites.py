#!/usr/bin/env python
# coding: utf-8

"""
CpG Site Sources
Readers for per-site methylation counts (BED and methcounts formats)
"""

import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple, Type

import numpy as np
import pandas as pd

from methdiff_engine.core.config import ComparisonConfig, get_config


class UnsortedInputError(ValueError):
    """Raised when a site file is not sorted by chromosome and position."""


# ============================================================================
# SITE RECORD
# ============================================================================


class Site(NamedTuple):
    """A genomic CpG position with methylated / unmethylated read counts."""

    chrom: str
    start: int
    end: int
    name: str
    score: float
    strand: str
    meth: int
    unmeth: int

    @property
    def total(self) -> int:
        return self.meth + self.unmeth


def site_precedes(x: Site, y: Site) -> bool:
    """Chromosome-major, position-minor ordering on (chrom, start)."""
    return x.chrom < y.chrom or (x.chrom == y.chrom and x.start < y.start)


def same_position(x: Site, y: Site) -> bool:
    return x.chrom == y.chrom and x.start == y.start


def counts_from_level(level: float, n_reads: int) -> Tuple[int, int]:
    """
    Split a read total into (methylated, unmethylated) counts.

    The methylated count is ``level * n_reads`` truncated toward zero (floor
    semantics, not rounding), so a level stored with limited precision can
    come out one read short.
    """
    if not 0.0 <= level <= 1.0:
        raise ValueError(f"Methylation level outside [0, 1]: {level}")
    if n_reads < 0:
        raise ValueError(f"Negative read count: {n_reads}")
    meth = int(level * n_reads)
    return meth, n_reads - meth


# ============================================================================
# SORTEDNESS
# ============================================================================


def check_sorted(sites: Sequence[Site]) -> bool:
    """True if no site precedes the one before it."""
    return not any(
        site_precedes(sites[i], sites[i - 1]) for i in range(1, len(sites))
    )


def validate_sorted(sites: Sequence[Site], path: str) -> None:
    """Raise UnsortedInputError naming ``path`` if ``sites`` is unsorted."""
    if not check_sorted(sites):
        raise UnsortedInputError(f'CpGs not sorted in file "{path}"')


# ============================================================================
# SITE SOURCES
# ============================================================================


class SiteSource(ABC):
    """
    Base reader for one methylation file.

    Subclasses map their raw columns onto a normalized frame with
    ``chrom, start, end, name, score, strand, level, n_reads``; counts are
    derived here the same way for every format.

    Column positions come from the format's ``columns`` layout in the
    configuration (``input_formats``), so a file with reordered or extra
    columns is read by editing the layout rather than the reader.
    """

    format_name: str = ""
    required_columns: Tuple[str, ...] = ()

    def __init__(self, path: str, layout: Optional[Dict[str, Any]] = None):
        self.path = str(path)
        if layout is None:
            layout = get_config().get_input_format(self.format_name)
        self.columns = {name: i for i, name in enumerate(layout["columns"])}
        self.level_column = layout["level_column"]
        self.reads_column = layout["reads_column"]

        needed = set(self.required_columns) | {self.level_column, self.reads_column}
        missing = sorted(needed - set(self.columns))
        if missing:
            raise ValueError(
                f"{self.format_name} layout has no column(s): {', '.join(missing)}"
            )
        self.min_columns = max(self.columns[name] for name in needed) + 1

    def _column(self, table: pd.DataFrame, name: str) -> pd.Series:
        return table[self.columns[name]]

    def _optional_column(self, table: pd.DataFrame, name: str, default: str) -> pd.Series:
        index = self.columns.get(name)
        if index is None or index >= table.shape[1]:
            return pd.Series(default, index=table.index)
        return table[index]

    def _read_table(self) -> pd.DataFrame:
        """Read the raw tab-separated table (gzip inferred from suffix)."""
        if not os.path.isfile(self.path):
            raise FileNotFoundError(f"Site file not found: {self.path}")
        try:
            table = pd.read_csv(
                self.path,
                sep="\t",
                header=None,
                comment="#",
                dtype=str,
                keep_default_na=False,
                compression="infer",
            )
        except pd.errors.EmptyDataError:
            return pd.DataFrame()

        if table.shape[1] < self.min_columns:
            raise ValueError(
                f"{self.path}: expected at least {self.min_columns} columns "
                f"for {self.format_name} format, found {table.shape[1]}"
            )
        return table

    def _numeric(self, values: pd.Series, field: str, integer: bool) -> pd.Series:
        """Convert a column to numbers, failing on the first bad record."""
        converted = pd.to_numeric(values, errors="coerce")
        bad = converted.isna()
        if integer:
            bad |= converted.notna() & (converted % 1 != 0)
        if bad.any():
            row = int(np.flatnonzero(bad.values)[0])
            raise ValueError(
                f"{self.path}: record {row + 1} has invalid {field} "
                f"'{values.iloc[row]}'"
            )
        return converted.astype(np.int64) if integer else converted.astype(float)

    @abstractmethod
    def _normalize(self, table: pd.DataFrame) -> pd.DataFrame:
        """Map raw columns onto the normalized site frame."""

    def load(self) -> List[Site]:
        """
        Read every site of the file in file order.

        Returns
        -------
        List[Site]
            Sites with counts derived by :func:`counts_from_level`
        """
        table = self._read_table()
        if table.empty:
            return []

        frame = self._normalize(table)

        level = frame["level"].to_numpy()
        n_reads = frame["n_reads"].to_numpy()
        out_of_range = (level < 0) | (level > 1)
        if out_of_range.any():
            row = int(np.flatnonzero(out_of_range)[0])
            raise ValueError(
                f"{self.path}: record {row + 1} has methylation level "
                f"outside [0, 1]: {level[row]}"
            )
        negative = n_reads < 0
        if negative.any():
            row = int(np.flatnonzero(negative)[0])
            raise ValueError(
                f"{self.path}: record {row + 1} has negative read count "
                f"{n_reads[row]}"
            )

        # floor(level * n), see counts_from_level
        meth = np.floor(level * n_reads).astype(np.int64)
        unmeth = n_reads - meth

        return [
            Site(chrom, int(start), int(end), name, float(score), strand, int(m), int(u))
            for chrom, start, end, name, score, strand, m, u in zip(
                frame["chrom"],
                frame["start"],
                frame["end"],
                frame["name"],
                frame["score"],
                frame["strand"],
                meth,
                unmeth,
            )
        ]


class BedSiteSource(SiteSource):
    """
    BED sites: ``chrom start end name score [strand]``.

    The name carries the read total after its first colon (``CpG:12``) and
    the score is the methylation level.
    """

    format_name = "bed"
    required_columns = ("chrom", "start", "end")

    def _normalize(self, table: pd.DataFrame) -> pd.DataFrame:
        names = self._column(table, self.reads_column)
        reads = names.str.extract(r"^[^:]*:(\d+)", expand=False)
        if reads.isna().any():
            row = int(np.flatnonzero(reads.isna().values)[0])
            raise ValueError(
                f"{self.path}: record {row + 1} name '{names.iloc[row]}' "
                "does not carry a read count (expected e.g. 'CpG:12')"
            )
        level = self._numeric(self._column(table, self.level_column), "score", integer=False)
        return pd.DataFrame(
            {
                "chrom": self._column(table, "chrom"),
                "start": self._numeric(self._column(table, "start"), "start", integer=True),
                "end": self._numeric(self._column(table, "end"), "end", integer=True),
                "name": names,
                "score": level,
                "strand": self._optional_column(table, "strand", "+"),
                "level": level,
                "n_reads": reads.astype(np.int64),
            }
        )


class MethcountsSiteSource(SiteSource):
    """Per-locus summary: ``chrom pos strand context level n_reads``."""

    format_name = "methcounts"
    required_columns = ("chrom", "pos", "strand", "context")

    def _normalize(self, table: pd.DataFrame) -> pd.DataFrame:
        start = self._numeric(self._column(table, "pos"), "position", integer=True)
        level = self._numeric(
            self._column(table, self.level_column), "methylation level", integer=False
        )
        n_reads = self._numeric(self._column(table, self.reads_column), "read count", integer=True)
        return pd.DataFrame(
            {
                "chrom": self._column(table, "chrom"),
                "start": start,
                "end": start + 1,
                "name": self._column(table, "context") + ":" + n_reads.astype(str),
                "score": level,
                "strand": self._column(table, "strand"),
                "level": level,
                "n_reads": n_reads,
            }
        )


SITE_SOURCES: Dict[str, Type[SiteSource]] = {
    "bed": BedSiteSource,
    "methcounts": MethcountsSiteSource,
}


# ============================================================================
# FORMAT DETECTION & LOADING
# ============================================================================


def detect_input_format(path: str, config: Optional[ComparisonConfig] = None) -> str:
    """
    Guess the input format of a site file.

    File suffix is checked first against each format's configured
    ``suffixes`` (``.bed``, ``.meth``, ``.methcounts``, optionally gzipped);
    otherwise the first data line is sniffed and a strand symbol in the
    third field means methcounts.
    """
    config = config or get_config()
    name = str(path).lower()
    for format_id, layout in config.input_formats.items():
        if format_id in SITE_SOURCES and any(
            name.endswith(suffix.lower()) for suffix in layout.get("suffixes", [])
        ):
            return format_id

    try:
        head = pd.read_csv(
            path,
            sep="\t",
            header=None,
            comment="#",
            dtype=str,
            keep_default_na=False,
            compression="infer",
            nrows=1,
        )
    except pd.errors.EmptyDataError:
        return "bed"

    if head.shape[1] >= 3 and head.iloc[0, 2] in ("+", "-"):
        return "methcounts"
    return "bed"


def read_sites(
    path: str, input_format: str = "auto", config: Optional[ComparisonConfig] = None
) -> List[Site]:
    """
    Load all sites from ``path``.

    Parameters
    ----------
    path : str
        BED or methcounts file (may be gzipped)
    input_format : str
        'auto', 'bed' or 'methcounts'
    config : ComparisonConfig, optional
        Source of the column layouts; the global configuration by default

    Returns
    -------
    List[Site]
        Sites in file order (sortedness is not checked here)
    """
    config = config or get_config()
    if input_format == "auto":
        input_format = detect_input_format(path, config)
    if input_format not in SITE_SOURCES:
        raise ValueError(f"Unknown input format: {input_format}")
    layout = config.get_input_format(input_format)
    return SITE_SOURCES[input_format](path, layout).load()
