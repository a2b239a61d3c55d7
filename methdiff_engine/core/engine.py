#!/usr/bin/env python
# coding: utf-8

"""
Pairwise Methylation Comparison Engine
Scores matched CpG sites of two datasets with the exact greater-proportion test
"""

import sys
import warnings
from typing import Dict, IO, Iterable, Iterator, List, NamedTuple, Optional, Sequence, Union

import numpy as np
import pandas as pd

from methdiff_engine.core.config import ComparisonConfig, get_config
from methdiff_engine.core.merge import merge_sites
from methdiff_engine.core.sites import Site, read_sites, validate_sorted
from methdiff_engine.core.stats import probability_greater


class ComparisonResult(NamedTuple):
    """One scored CpG: positions from dataset A plus the raw counts of both."""

    chrom: str
    start: int
    end: int
    name: str
    score: float
    strand: str
    meth_a: int
    unmeth_a: int
    meth_b: int
    unmeth_b: int


RESULT_COLUMNS = list(ComparisonResult._fields)


def _status(message: str, verbose: bool):
    """Progress messages go to stderr, stdout may carry results."""
    if verbose:
        print(message, file=sys.stderr)


# ============================================================================
# SCORING
# ============================================================================


def apply_pseudocount(count: int, pseudocount: float) -> int:
    """Add the pseudocount to a read count, truncating to an integer."""
    return int(count + pseudocount)


def score_pair(site_a: Site, site_b: Site, pseudocount: float = 1.0) -> float:
    """
    Probability that site A is more methylated than site B.

    B's counts go first so the test's "second pair greater" reads as
    "A greater than B".
    """
    return probability_greater(
        apply_pseudocount(site_b.meth, pseudocount),
        apply_pseudocount(site_b.unmeth, pseudocount),
        apply_pseudocount(site_a.meth, pseudocount),
        apply_pseudocount(site_a.unmeth, pseudocount),
    )


def _announce_chromosomes(sites: Iterable[Site], verbose: bool) -> Iterator[Site]:
    previous = None
    for site in sites:
        if site.chrom != previous:
            _status(f"[PROCESSING] {site.chrom}", verbose)
            previous = site.chrom
        yield site


def compare_sites(
    sites_a: Iterable[Site],
    sites_b: Sequence[Site],
    pseudocount: float = 1.0,
    all_loci: bool = False,
    verbose: bool = False,
) -> Iterator[ComparisonResult]:
    """
    Score every site of A that has a counterpart in B.

    Parameters
    ----------
    sites_a : Iterable[Site]
        Dataset A, sorted by (chrom, start)
    sites_b : Sequence[Site]
        Dataset B, sorted by (chrom, start)
    pseudocount : float
        Added to all four counts before testing
    all_loci : bool
        Also score pairs with zero reads on either side
    verbose : bool
        Report each chromosome of A as it is reached

    Returns
    -------
    Iterator[ComparisonResult]
        Lazily scored results, each named ``CpG:<meth_a>:<unmeth_a>:<meth_b>:<unmeth_b>`` with the
        raw counts and scored as P(level A > level B)

    Examples
    --------
    >>> results = list(compare_sites(read_sites('a.bed'), read_sites('b.bed')))
    """
    if pseudocount < 0:
        raise ValueError(f"pseudocount must be non-negative, got {pseudocount}")
    return _compare_sites(sites_a, sites_b, pseudocount, all_loci, verbose)


def _compare_sites(
    sites_a: Iterable[Site],
    sites_b: Sequence[Site],
    pseudocount: float,
    all_loci: bool,
    verbose: bool,
) -> Iterator[ComparisonResult]:
    n_nonfinite = 0
    for a, b in merge_sites(_announce_chromosomes(sites_a, verbose), sites_b):
        if not all_loci and (a.total == 0 or b.total == 0):
            continue

        score = score_pair(a, b, pseudocount)
        if not np.isfinite(score):
            n_nonfinite += 1

        yield ComparisonResult(
            a.chrom,
            a.start,
            a.end,
            f"CpG:{a.meth}:{a.unmeth}:{b.meth}:{b.unmeth}",
            score,
            a.strand,
            a.meth,
            a.unmeth,
            b.meth,
            b.unmeth,
        )

    if n_nonfinite:
        warnings.warn(
            f"{n_nonfinite} site(s) received a non-finite score; "
            "check for zero counts with a zero pseudocount.",
            RuntimeWarning,
        )


# ============================================================================
# BED OUTPUT
# ============================================================================


def format_bed_line(result: ComparisonResult, score_format: str = "g") -> str:
    """Render a result as ``chrom start end name score strand``."""
    return "\t".join(
        [
            result.chrom,
            str(result.start),
            str(result.end),
            result.name,
            format(result.score, score_format),
            result.strand,
        ]
    )


def write_bed(
    results: Iterable[ComparisonResult], handle: IO[str], score_format: str = "g"
) -> int:
    """Stream results to an open text handle; returns the number written."""
    n_written = 0
    for result in results:
        handle.write(format_bed_line(result, score_format) + "\n")
        n_written += 1
    return n_written


def load_sorted_sites(
    path: str,
    input_format: str = "auto",
    verbose: bool = False,
    config: Optional[ComparisonConfig] = None,
) -> List[Site]:
    """Read a site file and fail if it is not sorted."""
    _status(f"[READING CPGS] {path}", verbose)
    sites = read_sites(path, input_format, config)
    validate_sorted(sites, path)
    _status(f"[READ={path}] {len(sites):,} sites", verbose)
    return sites


def compare_files(
    path_a: str,
    path_b: str,
    output: Optional[str] = None,
    pseudocount: Optional[float] = None,
    all_loci: Optional[bool] = None,
    input_format: Optional[str] = None,
    output_format: Optional[str] = None,
    score_format: Optional[str] = None,
    report: Optional[str] = None,
    verbose: Optional[bool] = None,
    config: Optional[ComparisonConfig] = None,
) -> int:
    """
    Compare two site files end to end.

    Settings left as None are taken from ``config`` (the global
    configuration by default, see :func:`~methdiff_engine.core.config.load_config`).

    Parameters
    ----------
    path_a, path_b : str
        Sorted BED or methcounts files for datasets A and B
    output : str, optional
        Output path; standard output if None (BED only)
    pseudocount : float, optional
        Added to all four counts before testing
    all_loci : bool, optional
        Also score zero-coverage pairs
    input_format : str, optional
        'auto', 'bed' or 'methcounts' (applies to both files)
    output_format : str, optional
        'bed', 'csv', 'tsv' or 'excel'
    score_format : str, optional
        Format string for the BED score column, e.g. 'g' or '.4f'
    report : str, optional
        Path of a PDF run report
    verbose : bool, optional
        Print progress to stderr
    config : ComparisonConfig, optional
        Settings and input layouts; the global configuration by default

    Returns
    -------
    int
        Number of sites written
    """
    config = (config or get_config()).copy()
    config.update(
        pseudocount=pseudocount,
        all_loci=all_loci,
        input_format=input_format,
        output_format=output_format,
        score_format=score_format,
        verbose=verbose,
    )
    pseudocount = config.get("pseudocount")
    all_loci = config.get("all_loci")
    input_format = config.get("input_format")
    output_format = config.get("output_format")
    score_format = config.get("score_format")
    verbose = config.get("verbose")

    if output_format != "bed" and output is None:
        raise ValueError(f"An output path is required for {output_format} output")

    sites_a = load_sorted_sites(path_a, input_format, verbose, config)
    sites_b = load_sorted_sites(path_b, input_format, verbose, config)
    _status(f"CPG COUNT A: {len(sites_a):,}", verbose)
    _status(f"CPG COUNT B: {len(sites_b):,}", verbose)

    results: Iterable[ComparisonResult] = compare_sites(
        sites_a, sites_b, pseudocount=pseudocount, all_loci=all_loci, verbose=verbose
    )
    if report is not None or output_format != "bed":
        results = list(results)

    if output_format == "bed":
        if output is None:
            n_written = write_bed(results, sys.stdout, score_format)
        else:
            with open(output, "w") as out:
                n_written = write_bed(results, out, score_format)
    else:
        res = results_to_dataframe(results)
        export_results(res, output, format=output_format, verbose=verbose)
        n_written = len(res)

    if report is not None:
        from methdiff_engine.core.report import write_comparison_report

        write_comparison_report(
            results_to_dataframe(results),
            report,
            inputs={"A": path_a, "B": path_b},
            settings={
                "pseudocount": pseudocount,
                "all_loci": all_loci,
                "input_format": input_format,
            },
            echo=verbose,
        )

    _status(f"✔ {n_written:,} sites compared", verbose)
    return n_written


# ============================================================================
# RESULTS ANALYSIS
# ============================================================================


def results_to_dataframe(results: Iterable[ComparisonResult]) -> pd.DataFrame:
    """
    Collect results into a DataFrame indexed by ``chrom:start``.

    Adds observed methylation levels ``level_a``, ``level_b`` (NaN without
    coverage) and their difference ``delta``.
    """
    res = pd.DataFrame(list(results), columns=RESULT_COLUMNS).astype(
        {
            "start": np.int64,
            "end": np.int64,
            "score": float,
            "meth_a": np.int64,
            "unmeth_a": np.int64,
            "meth_b": np.int64,
            "unmeth_b": np.int64,
        }
    )
    res.index = res["chrom"].astype(str) + ":" + res["start"].astype(str)

    total_a = res["meth_a"] + res["unmeth_a"]
    total_b = res["meth_b"] + res["unmeth_b"]
    res["level_a"] = res["meth_a"] / total_a.replace(0, np.nan)
    res["level_b"] = res["meth_b"] / total_b.replace(0, np.nan)
    res["delta"] = res["level_a"] - res["level_b"]
    return res


def summarize_comparison_results(res: pd.DataFrame, prob_thresh: float = 0.95) -> Dict:
    """Generate summary statistics for a comparison."""
    scores = res["score"]
    finite = scores[np.isfinite(scores)]

    summary = {
        "total_compared": len(res),
        "hyper_in_a": int((finite >= prob_thresh).sum()),
        "hyper_in_b": int((finite <= 1 - prob_thresh).sum()),
        "pct_differential": (
            ((finite >= prob_thresh) | (finite <= 1 - prob_thresh)).sum()
            / len(res) * 100 if len(res) > 0 else 0
        ),
        "mean_score": float(finite.mean()) if len(finite) > 0 else np.nan,
        "median_score": float(finite.median()) if len(finite) > 0 else np.nan,
        "mean_abs_delta": (
            float(res["delta"].abs().mean()) if res["delta"].notna().any() else 0
        ),
        "n_nonfinite": int(len(scores) - len(finite)),
        "n_chromosomes": int(res["chrom"].nunique()),
    }

    return summary


def get_differential_sites(
    res: pd.DataFrame,
    prob_thresh: float = 0.95,
    direction: Optional[str] = None,
    min_delta: Optional[float] = None,
    return_summary: bool = False,
) -> Union[List[str], Dict]:
    """
    Extract confidently differential sites.

    Parameters
    ----------
    res : pd.DataFrame
        Results from results_to_dataframe
    prob_thresh : float
        Minimum probability of the called direction
    direction : str, optional
        'hyper' (A more methylated), 'hypo' (A less methylated), or None
    min_delta : float, optional
        Minimum absolute observed level difference
    return_summary : bool
        Return dictionary with summary statistics

    Returns
    -------
    List[str] or Dict
        Site identifiers (``chrom:start``) or summary dictionary
    """
    if direction not in (None, "hyper", "hypo"):
        raise ValueError(f"Unknown direction: {direction}")

    hyper = res["score"] >= prob_thresh
    hypo = res["score"] <= 1 - prob_thresh

    if direction == "hyper":
        sig = res[hyper]
    elif direction == "hypo":
        sig = res[hypo]
    else:
        sig = res[hyper | hypo]

    if min_delta is not None:
        sig = sig[sig["delta"].abs() >= min_delta]

    site_list = sig.index.tolist()

    if return_summary:
        return {
            "n_differential": len(site_list),
            "n_hyper": int((sig["score"] >= prob_thresh).sum()),
            "n_hypo": int((sig["score"] <= 1 - prob_thresh).sum()),
            "mean_abs_delta": sig["delta"].abs().mean(),
            "sites": site_list,
        }

    return site_list


def export_results(
    res: pd.DataFrame,
    output_path: str,
    format: str = "csv",
    include_all: bool = True,
    verbose: bool = True,
):
    """Export results to file."""

    if not include_all:
        cols = ["chrom", "start", "end", "name", "score", "strand"]
        res_export = res[[c for c in cols if c in res.columns]]
    else:
        res_export = res

    if format == "csv":
        res_export.to_csv(output_path, index=False)
    elif format == "tsv":
        res_export.to_csv(output_path, sep="\t", index=False)
    elif format == "excel":
        res_export.to_excel(output_path, engine="openpyxl", index=False)
    elif format == "bed":
        with open(output_path, "w") as out:
            write_bed(
                (ComparisonResult(*row) for row in res[RESULT_COLUMNS].itertuples(index=False)),
                out,
            )
    else:
        raise ValueError(f"Unsupported format: {format}")

    if verbose:
        print(f"✔ Results exported to {output_path}", file=sys.stderr)


# ============================================================================
# VISUALIZATION
# ============================================================================


def plot_score_distribution(
    res: pd.DataFrame,
    bins: int = 50,
    prob_thresh: float = 0.95,
    save_path: Optional[str] = None,
    dpi: int = 300,
):
    """Histogram of comparison probabilities with the calling thresholds."""
    import matplotlib.pyplot as plt

    scores = res["score"][np.isfinite(res["score"])]

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.hist(scores, bins=bins, range=(0, 1), color="steelblue", edgecolor="k", linewidth=0.3)
    ax.axvline(1 - prob_thresh, color="blue", linestyle="--", lw=1, alpha=0.7)
    ax.axvline(prob_thresh, color="red", linestyle="--", lw=1, alpha=0.7)
    ax.set_xlabel("P(methylation A > B)", fontsize=12)
    ax.set_ylabel("CpG sites", fontsize=12)
    ax.set_title("Comparison Score Distribution", fontsize=14)
    ax.grid(alpha=0.3)

    plt.tight_layout()
    if save_path:
        plt.savefig(save_path, dpi=dpi, bbox_inches="tight")

    return fig


def plot_methylation_scatter(
    res: pd.DataFrame,
    alpha: float = 0.6,
    save_path: Optional[str] = None,
    dpi: int = 300,
):
    """Observed levels of A against B, colored by comparison score."""
    import matplotlib.pyplot as plt

    covered = res.dropna(subset=["level_a", "level_b"])

    fig, ax = plt.subplots(figsize=(6, 6))
    points = ax.scatter(
        covered["level_b"],
        covered["level_a"],
        c=covered["score"],
        cmap="coolwarm",
        vmin=0,
        vmax=1,
        alpha=alpha,
        edgecolor="k",
        linewidth=0.2,
        s=15,
    )
    ax.plot([0, 1], [0, 1], color="black", linestyle="--", lw=1, alpha=0.5)
    fig.colorbar(points, ax=ax, label="P(A > B)")
    ax.set_xlim(-0.02, 1.02)
    ax.set_ylim(-0.02, 1.02)
    ax.set_xlabel("Methylation level B", fontsize=12)
    ax.set_ylabel("Methylation level A", fontsize=12)
    ax.set_title("Per-site Methylation", fontsize=14)
    ax.grid(alpha=0.3)

    plt.tight_layout()
    if save_path:
        plt.savefig(save_path, dpi=dpi, bbox_inches="tight")

    return fig
