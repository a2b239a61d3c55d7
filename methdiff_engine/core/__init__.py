#!/usr/bin/env python
# coding: utf-8

"""
Pairwise Differential Methylation

Probability that individual CpGs are more methylated in one dataset than
another, from methylated / unmethylated read counts.

Modules
-------
config : Run settings and input format descriptions
sites : BED / methcounts readers and site ordering
merge : Sorted merge of two site collections
stats : Exact greater-proportion test in log space
engine : Comparison pipeline, results analysis, export, plots
report : PDF run report
cli : ``methdiff`` command-line entry point
"""

__version__ = "0.1.0"

# Configuration
from methdiff_engine.core.config import (
    ComparisonConfig,
    export_default_config,
    get_config,
    load_config,
)

# Comparison
from methdiff_engine.core.engine import (
    ComparisonResult,
    compare_files,
    compare_sites,
    export_results,
    format_bed_line,
    get_differential_sites,
    plot_methylation_scatter,
    plot_score_distribution,
    results_to_dataframe,
    score_pair,
    summarize_comparison_results,
    write_bed,
)
from methdiff_engine.core.merge import merge_sites

# Reporting
from methdiff_engine.core.report import PDFReport, write_comparison_report

# Sites
from methdiff_engine.core.sites import (
    Site,
    UnsortedInputError,
    check_sorted,
    detect_input_format,
    read_sites,
)

# Statistics
from methdiff_engine.core.stats import log_binom, log_sum_log, probability_greater

__all__ = [
    # Version
    "__version__",
    # Config
    "ComparisonConfig",
    "get_config",
    "load_config",
    "export_default_config",
    # Sites
    "Site",
    "UnsortedInputError",
    "check_sorted",
    "detect_input_format",
    "read_sites",
    # Core
    "merge_sites",
    "log_binom",
    "log_sum_log",
    "probability_greater",
    # Engine
    "ComparisonResult",
    "compare_sites",
    "compare_files",
    "score_pair",
    "format_bed_line",
    "write_bed",
    "results_to_dataframe",
    "summarize_comparison_results",
    "get_differential_sites",
    "export_results",
    "plot_score_distribution",
    "plot_methylation_scatter",
    # Reporting
    "PDFReport",
    "write_comparison_report",
]
