"""Tests for layout document reading, writing, detection and listing.

Run:  python -m pytest tests/test_layout.py -v
"""
from __future__ import annotations

import base64
import os
import sys
from datetime import datetime
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from histoboard._errors import (
    FormatUnrecognized, InvalidDocument, InvalidFormat, InvalidOperation,
    LayoutError, NotFound,
)
from histoboard import _layout as layout_module
from histoboard._layout import (
    LEGACY_DESCRIPTION, detect_format, list_layouts, read_layout, read_single,
    write_layout,
)
from histoboard._types import LayoutFormat, SeriesConfig, Statistics

BLOB = b'{"chart": {"panes": [{"title": "A"}]}}'


def _single_xml(bin_count: str = "15", blob: bytes = BLOB) -> str:
    encoded = base64.b64encode(blob).decode()
    return f"""<?xml version="1.0" encoding="utf-8"?>
<HistogramChartLayout>
  <HistogramConfig>
    <HistogramName>Heights</HistogramName>
    <BinCount>{bin_count}</BinCount>
    <MinValue>1.5</MinValue>
    <MaxValue>9.5</MaxValue>
    <SavedDateTime>2024-03-01T12:30:00</SavedDateTime>
    <Description>one histogram</Description>
    <Statistics><Count>4</Count><Mean>2.5</Mean></Statistics>
  </HistogramConfig>
  <ChartLayout encoding="base64">{encoded}</ChartLayout>
  <Version>1.0</Version>
</HistogramChartLayout>
"""


def _unified_xml(histograms: str, layout: str) -> str:
    return f"""<UnifiedChartLayoutWithMetadata>
  <UnifiedConfig>
    <SavedDateTime>2024-01-01T00:00:00</SavedDateTime>
    <Description>x</Description>
    <Histograms>{histograms}</Histograms>
  </UnifiedConfig>
  {layout}
  <Version>2.0</Version>
</UnifiedChartLayoutWithMetadata>"""


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------

class TestRoundTrip:
    def test_configs_survive_in_order(self, tmp_path):
        configs = [
            SeriesConfig(name="A", bin_count=5,
                         statistics=Statistics(3, 2.0, 0.8, 1.0, 3.0)),
            SeriesConfig(name="B", bin_count=42, min_value=-1.25,
                         max_value=8.0),
            SeriesConfig(name="A", bin_count=1, description="dup name"),
        ]
        path = write_layout(tmp_path / "layout.xml", configs, BLOB,
                            description="three")
        doc = read_layout(path)
        assert doc.format is LayoutFormat.UNIFIED
        assert doc.version == "2.0"
        assert doc.description == "three"
        assert doc.blob == BLOB
        assert [c.name for c in doc.configs] == ["A", "B", "A"]
        assert [c.bin_count for c in doc.configs] == [5, 42, 1]
        assert (doc.configs[1].min_value, doc.configs[1].max_value) == (-1.25, 8.0)
        assert not doc.configs[0].has_bounds
        assert doc.configs[0].statistics == Statistics(3, 2.0, 0.8, 1.0, 3.0)
        assert doc.configs[2].description == "dup name"

    def test_saved_at_stamped(self, tmp_path):
        when = datetime(2024, 5, 6, 7, 8, 9)
        path = write_layout(tmp_path / "l.xml", [SeriesConfig(name="A")],
                            BLOB, saved_at=when)
        doc = read_layout(path)
        assert doc.saved_at == when
        assert doc.configs[0].saved_at == when

    def test_default_description(self, tmp_path):
        path = write_layout(tmp_path / "l.xml", [SeriesConfig(name="A")], BLOB)
        assert read_layout(path).description == \
            "Unified layout for all histograms"

    def test_creates_parent_directory(self, tmp_path):
        path = write_layout(tmp_path / "a" / "b" / "l.xml",
                            [SeriesConfig(name="A")], BLOB)
        assert path.is_file()

    def test_binary_blob(self, tmp_path):
        blob = bytes(range(256))
        path = write_layout(tmp_path / "l.xml", [SeriesConfig()], blob)
        assert read_layout(path).blob == blob


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

class TestDetection:
    def test_unified(self, tmp_path):
        path = write_layout(tmp_path / "l.xml", [SeriesConfig()], BLOB)
        assert detect_format(path) is LayoutFormat.UNIFIED

    def test_single(self, tmp_path):
        path = tmp_path / "single.xml"
        path.write_text(_single_xml())
        assert detect_format(path) is LayoutFormat.SINGLE

    def test_other_xml_is_legacy(self, tmp_path):
        path = tmp_path / "legacy.xml"
        path.write_text("<ChartControl><Diagram/></ChartControl>")
        assert detect_format(path) is LayoutFormat.LEGACY

    def test_non_xml_is_legacy(self, tmp_path):
        path = tmp_path / "legacy.json"
        path.write_bytes(BLOB)
        assert detect_format(path) is LayoutFormat.LEGACY

    def test_missing(self, tmp_path):
        with pytest.raises(NotFound):
            detect_format(tmp_path / "none.xml")
        with pytest.raises(FileNotFoundError):
            read_layout(tmp_path / "none.xml")


# ---------------------------------------------------------------------------
# Single-histogram documents
# ---------------------------------------------------------------------------

class TestSingle:
    def test_read(self, tmp_path):
        path = tmp_path / "single.xml"
        path.write_text(_single_xml())
        doc = read_single(path)
        assert doc.format is LayoutFormat.SINGLE
        assert doc.version == "1.0"
        assert doc.blob == BLOB
        (cfg,) = doc.configs
        assert cfg.name == "Heights"
        assert cfg.bin_count == 15
        assert (cfg.min_value, cfg.max_value) == (1.5, 9.5)
        assert cfg.statistics.count == 4
        assert cfg.statistics.std == 0.0
        assert doc.saved_at == datetime(2024, 3, 1, 12, 30)

    def test_decimal_bin_count(self, tmp_path):
        path = tmp_path / "single.xml"
        path.write_text(_single_xml("12.0"))
        assert read_layout(path).configs[0].bin_count == 12

    def test_bin_count_clamped(self, tmp_path):
        path = tmp_path / "single.xml"
        path.write_text(_single_xml("400"))
        assert read_layout(path).configs[0].bin_count == 100

    def test_bad_bin_count(self, tmp_path):
        path = tmp_path / "single.xml"
        path.write_text(_single_xml("lots"))
        with pytest.raises(InvalidDocument) as exc:
            read_layout(path)
        assert "single.xml" in str(exc.value)
        assert exc.value.path == path

    def test_unified_rejected(self, tmp_path):
        path = write_layout(tmp_path / "l.xml", [SeriesConfig()], BLOB)
        with pytest.raises(InvalidOperation):
            read_single(path)

    def test_plain_text_blob(self, tmp_path):
        path = tmp_path / "single.xml"
        path.write_text(
            "<HistogramChartLayout><HistogramConfig>"
            "<HistogramName>A</HistogramName></HistogramConfig>"
            "<DevExpressChartLayout>chart-data</DevExpressChartLayout>"
            "</HistogramChartLayout>")
        doc = read_layout(path)
        assert doc.blob == b"chart-data"
        assert doc.configs[0].bin_count == 10


# ---------------------------------------------------------------------------
# Unified document errors
# ---------------------------------------------------------------------------

class TestUnifiedErrors:
    def test_no_configs(self, tmp_path):
        path = tmp_path / "l.xml"
        path.write_text(_unified_xml(
            "", '<ChartLayout encoding="base64">'
                f'{base64.b64encode(BLOB).decode()}</ChartLayout>'))
        with pytest.raises(InvalidDocument):
            read_layout(path)

    def test_empty_blob(self, tmp_path):
        path = tmp_path / "l.xml"
        path.write_text(_unified_xml(
            "<HistogramConfiguration><HistogramName>A</HistogramName>"
            "</HistogramConfiguration>", "<ChartLayout></ChartLayout>"))
        with pytest.raises(InvalidDocument):
            read_layout(path)

    def test_bad_base64(self, tmp_path):
        path = tmp_path / "l.xml"
        path.write_text(_unified_xml(
            "<HistogramConfiguration/>",
            '<ChartLayout encoding="base64">*** not base64 ***</ChartLayout>'))
        with pytest.raises(InvalidDocument):
            read_layout(path)

    def test_truncated(self, tmp_path):
        path = tmp_path / "l.xml"
        path.write_text("<UnifiedChartLayoutWithMetadata><UnifiedConfig>")
        assert detect_format(path) is LayoutFormat.UNIFIED
        with pytest.raises(InvalidDocument):
            read_layout(path)

    def test_errors_are_layout_errors(self):
        assert issubclass(InvalidDocument, LayoutError)
        assert issubclass(FormatUnrecognized, LayoutError)


# ---------------------------------------------------------------------------
# Legacy documents
# ---------------------------------------------------------------------------

class TestLegacy:
    def test_read(self, tmp_path):
        path = tmp_path / "old.xml"
        path.write_text("<ChartControl><Diagram><Pane/></Diagram></ChartControl>")
        stamp = datetime(2023, 2, 3, 4, 5, 6).timestamp()
        os.utime(path, (stamp, stamp))
        doc = read_single(path)
        assert doc.format is LayoutFormat.LEGACY
        assert doc.blob == path.read_bytes()
        assert doc.description == LEGACY_DESCRIPTION
        assert doc.saved_at == datetime(2023, 2, 3, 4, 5, 6)
        (cfg,) = doc.configs
        assert cfg.bin_count == 10
        assert cfg.description == LEGACY_DESCRIPTION

    def test_json_blob(self, tmp_path):
        path = tmp_path / "old.json"
        path.write_bytes(BLOB)
        assert read_layout(path).blob == BLOB

    def test_implausible_text(self, tmp_path):
        path = tmp_path / "notes.xml"
        path.write_text("shopping list: eggs, milk")
        with pytest.raises(InvalidFormat):
            read_layout(path)

    def test_chart_without_structure_words(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("a chart of nothing")
        with pytest.raises(InvalidFormat):
            read_layout(path)

    def test_binary(self, tmp_path):
        path = tmp_path / "image.xml"
        path.write_bytes(b"\x89PNG\r\n\x1a\n\x00\x00\xff\xfe")
        with pytest.raises(FormatUnrecognized):
            read_layout(path)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

class TestListLayouts:
    def test_newest_first_skipping_bad(self, tmp_path, caplog):
        write_layout(tmp_path / "old.xml",
                     [SeriesConfig(name="A", statistics=Statistics(count=7))],
                     BLOB, description="older",
                     saved_at=datetime(2024, 1, 1))
        write_layout(tmp_path / "new.xml",
                     [SeriesConfig(name="B"), SeriesConfig(name="C")],
                     BLOB, description="newer",
                     saved_at=datetime(2024, 6, 1))
        (tmp_path / "broken.xml").write_text(
            "<UnifiedChartLayoutWithMetadata><oops>")
        (tmp_path / "legacy.xml").write_text(
            "<ChartControl><Diagram/></ChartControl>")
        (tmp_path / "ignored.txt").write_text("not a layout")

        summaries = list_layouts(tmp_path)
        assert [s.file_name for s in summaries] == ["new.xml", "old.xml"]
        assert summaries[0].series_names == ("B", "C")
        assert summaries[0].total_series == 2
        assert summaries[1].data_point_counts == (7,)
        assert summaries[1].description == "older"
        assert "broken.xml" in caplog.text

    def test_unreadable_file_skipped(self, tmp_path, monkeypatch, caplog):
        write_layout(tmp_path / "ok.xml", [SeriesConfig(name="A")], BLOB)
        write_layout(tmp_path / "locked.xml", [SeriesConfig(name="B")], BLOB)
        real_detect = layout_module.detect_format

        def detect(path):
            if Path(path).name == "locked.xml":
                raise PermissionError(13, "Permission denied", str(path))
            return real_detect(path)

        monkeypatch.setattr(layout_module, "detect_format", detect)
        summaries = list_layouts(tmp_path)
        assert [s.file_name for s in summaries] == ["ok.xml"]
        assert "locked.xml" in caplog.text

    def test_missing_directory(self, tmp_path):
        assert list_layouts(tmp_path / "nowhere") == []
