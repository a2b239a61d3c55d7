#!/usr/bin/env python
# coding: utf-8

"""
Comparison Run Report
PDF summary of a pairwise methylation comparison
"""

import os
import sys
import tempfile
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.lib.utils import ImageReader
from reportlab.platypus import (
    Image,
    ListFlowable,
    ListItem,
    Paragraph,
    Preformatted,
    SimpleDocTemplate,
    Spacer,
)

from methdiff_engine.core.engine import (
    get_differential_sites,
    plot_methylation_scatter,
    plot_score_distribution,
    summarize_comparison_results,
)


# ============================================================================
# PDF REPORTING
# ============================================================================


class PDFReport:
    """Flowable-based PDF report with headings, lists, tables and figures."""

    def __init__(self, path: str = "methdiff_report.pdf", echo: bool = False):
        self.path = path
        self.echo = echo
        self.doc = SimpleDocTemplate(path, pagesize=A4)
        self.styles = getSampleStyleSheet()
        self.styles.add(
            ParagraphStyle(
                "CodeBlock",
                parent=self.styles["Normal"],
                fontName="Courier",
                fontSize=8,
            )
        )
        self.story: List[Any] = []

    def _echo(self, text: str):
        if self.echo:
            print(text, file=sys.stderr)

    def heading(self, text: str, level: int = 1):
        if level not in (1, 2, 3):
            raise ValueError(f"Heading level must be 1-3, got {level}")
        self._echo(f"{'#' * level} {text}")
        self.story.append(Paragraph(text, self.styles[f"Heading{level}"]))

    def paragraph(self, text: str):
        text = text.strip()
        if not text:
            return
        self._echo(text)
        self.story.append(Paragraph(text, self.styles["Normal"]))
        self.story.append(Spacer(1, 0.1 * inch))

    def bullets(self, items: List[str]):
        if not items:
            return
        for item in items:
            self._echo(f"- {item}")
        self.story.append(
            ListFlowable(
                [ListItem(Paragraph(item, self.styles["Normal"])) for item in items],
                bulletType="bullet",
                leftIndent=18,
                bulletFontSize=10,
                spaceAfter=12,
            )
        )

    def table(self, df: pd.DataFrame, title: Optional[str] = None, max_rows: int = 20):
        """Add a DataFrame as preformatted text, truncated to max_rows."""
        if title:
            self.story.append(Paragraph(f"<b>{title}</b>", self.styles["Normal"]))
            self.story.append(Spacer(1, 0.1 * inch))

        table_text = df.head(max_rows).to_string()
        if len(df) > max_rows:
            table_text += f"\n... ({len(df) - max_rows} more rows)"

        self._echo(table_text)
        self.story.append(Preformatted(table_text, self.styles["CodeBlock"]))
        self.story.append(Spacer(1, 0.15 * inch))

    def image(self, path: str, caption: Optional[str] = None, width: float = 5 * inch):
        """Add an image scaled to fit the page width."""
        if not os.path.exists(path):
            raise FileNotFoundError(f"Image not found: {path}")

        iw, ih = ImageReader(path).getSize()
        aspect = ih / float(iw)
        width = min(width, A4[0] - 2 * inch)
        height = width * aspect

        self.story.append(Image(path, width=width, height=height))
        if caption:
            self.story.append(Paragraph(caption, self.styles["Italic"]))
        self.story.append(Spacer(1, 0.2 * inch))

    def save(self):
        """Build the PDF."""
        self.doc.build(self.story)
        self._echo(f"✔ PDF saved to {self.path}")


def write_comparison_report(
    res: pd.DataFrame,
    path: str,
    prob_thresh: float = 0.95,
    inputs: Optional[Dict[str, str]] = None,
    settings: Optional[Dict[str, Any]] = None,
    top_n: int = 20,
    echo: bool = False,
) -> str:
    """
    Write a PDF report for a finished comparison.

    Parameters
    ----------
    res : pd.DataFrame
        Results from results_to_dataframe
    path : str
        Output PDF path
    prob_thresh : float
        Probability used to call differential sites
    inputs : Dict[str, str], optional
        Dataset label -> input file
    settings : Dict, optional
        Run settings to list in the report
    top_n : int
        Number of most extreme sites to tabulate
    echo : bool
        Also print the report text

    Returns
    -------
    str
        The report path
    """
    import matplotlib.pyplot as plt

    summary = summarize_comparison_results(res, prob_thresh=prob_thresh)
    report = PDFReport(path, echo=echo)

    report.heading("Pairwise Methylation Comparison")
    if inputs:
        report.heading("Inputs", level=2)
        report.bullets([f"<b>{label}</b>: {name}" for label, name in inputs.items()])
    if settings:
        report.heading("Settings", level=2)
        report.bullets([f"{key}: {value}" for key, value in settings.items()])

    report.heading("Summary", level=2)
    report.bullets(
        [
            f"Sites compared: {summary['total_compared']:,}",
            f"Chromosomes: {summary['n_chromosomes']}",
            f"More methylated in A (P &gt;= {prob_thresh}): {summary['hyper_in_a']:,}",
            f"More methylated in B (P &lt;= {1 - prob_thresh:.2g}): {summary['hyper_in_b']:,}",
            f"Differential: {summary['pct_differential']:.2f}%",
            f"Median score: {summary['median_score']:.4g}",
            f"Non-finite scores: {summary['n_nonfinite']}",
        ]
    )

    n_differential = len(get_differential_sites(res, prob_thresh=prob_thresh))
    if n_differential:
        extreme = res[(res["score"] >= prob_thresh) | (res["score"] <= 1 - prob_thresh)]
        order = np.argsort(-(extreme["score"] - 0.5).abs().to_numpy(), kind="stable")
        report.table(
            extreme.iloc[order][["name", "score", "level_a", "level_b", "delta"]],
            title=f"Top differential sites (of {n_differential:,})",
            max_rows=top_n,
        )
    else:
        report.paragraph("No sites passed the probability threshold.")

    with tempfile.TemporaryDirectory() as assets:
        if len(res) > 0:
            hist_path = os.path.join(assets, "score_distribution.png")
            fig = plot_score_distribution(res, prob_thresh=prob_thresh, save_path=hist_path, dpi=150)
            plt.close(fig)
            report.image(hist_path, caption="Distribution of P(methylation A > B)")

            scatter_path = os.path.join(assets, "methylation_scatter.png")
            fig = plot_methylation_scatter(res, save_path=scatter_path, dpi=150)
            plt.close(fig)
            report.image(scatter_path, caption="Observed methylation levels")

        report.save()

    return path
