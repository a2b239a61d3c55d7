#!/usr/bin/env python
# coding: utf-8

"""
Test suite for PDF run reports

Run with:
    pytest tests/test_report.py -v --cov=methdiff_engine.core.report
"""

import pandas as pd
import pytest

from methdiff_engine.core.engine import compare_sites, plot_score_distribution, results_to_dataframe
from methdiff_engine.core.report import PDFReport, write_comparison_report
from methdiff_engine.core.sites import read_sites


@pytest.fixture
def results_df(bed_pair):
    path_a, path_b = bed_pair
    return results_to_dataframe(compare_sites(read_sites(path_a), read_sites(path_b)))


class TestPDFReport:
    """Test PDF building blocks."""

    def test_init(self, tmp_path):
        pdf_path = tmp_path / "test.pdf"
        report = PDFReport(str(pdf_path))

        assert report.path == str(pdf_path)
        assert not report.echo
        assert len(report.story) == 0

    @pytest.mark.parametrize("level", [1, 2, 3])
    def test_heading(self, tmp_path, level):
        report = PDFReport(str(tmp_path / "test.pdf"))
        report.heading("Section", level=level)
        assert len(report.story) == 1

    def test_heading_bad_level(self, tmp_path):
        report = PDFReport(str(tmp_path / "test.pdf"))
        with pytest.raises(ValueError, match="Heading level"):
            report.heading("Section", level=4)

    def test_paragraph_empty(self, tmp_path):
        report = PDFReport(str(tmp_path / "test.pdf"))
        report.paragraph("   ")
        assert len(report.story) == 0

    def test_bullets(self, tmp_path):
        report = PDFReport(str(tmp_path / "test.pdf"))
        report.bullets(["one", "two"])
        report.bullets([])
        assert len(report.story) == 1

    def test_table_truncates(self, tmp_path, capsys):
        report = PDFReport(str(tmp_path / "test.pdf"), echo=True)
        df = pd.DataFrame({"score": range(30)})
        report.table(df, title="Scores", max_rows=5)

        assert "(25 more rows)" in capsys.readouterr().err
        assert len(report.story) == 4

    def test_echo(self, tmp_path, capsys):
        report = PDFReport(str(tmp_path / "test.pdf"), echo=True)
        report.heading("Title")
        report.bullets(["item"])

        out = capsys.readouterr().err
        assert "# Title" in out
        assert "- item" in out

    def test_image(self, tmp_path, results_df):
        import matplotlib.pyplot as plt

        img = tmp_path / "hist.png"
        fig = plot_score_distribution(results_df, save_path=str(img), dpi=50)
        plt.close(fig)

        report = PDFReport(str(tmp_path / "test.pdf"))
        report.image(str(img), caption="Histogram")
        assert len(report.story) == 3

    def test_image_missing(self, tmp_path):
        report = PDFReport(str(tmp_path / "test.pdf"))
        with pytest.raises(FileNotFoundError):
            report.image(str(tmp_path / "missing.png"))

    def test_save(self, tmp_path):
        pdf_path = tmp_path / "test.pdf"
        report = PDFReport(str(pdf_path))
        report.heading("Title")
        report.paragraph("Body text")
        report.save()

        assert pdf_path.read_bytes().startswith(b"%PDF")


class TestComparisonReport:
    """Test the full comparison report."""

    def test_write_report(self, tmp_path, results_df):
        path = tmp_path / "report.pdf"
        returned = write_comparison_report(
            results_df,
            str(path),
            inputs={"A": "a.bed", "B": "b.bed"},
            settings={"pseudocount": 1.0},
        )

        assert returned == str(path)
        assert path.read_bytes().startswith(b"%PDF")

    def test_write_report_no_results(self, tmp_path):
        path = tmp_path / "empty.pdf"
        write_comparison_report(results_to_dataframe([]), str(path))

        assert path.exists()
