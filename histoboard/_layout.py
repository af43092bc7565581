"""Layout documents: chart structure blob + per-histogram configuration.

Three document shapes are recognised by their root element alone:

``UnifiedChartLayoutWithMetadata`` (version 2.0)
    Every histogram's configuration plus one chart blob. This is the only
    shape that is written.
``HistogramChartLayout`` (version 1.0)
    A single histogram configuration plus a chart blob.
anything else
    A legacy file that *is* the chart blob, with no metadata at all.
"""
from __future__ import annotations

import base64
import binascii
import logging
import xml.etree.ElementTree as ET
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Sequence

from ._errors import (
    FormatUnrecognized, InvalidDocument, InvalidFormat, InvalidOperation,
    LayoutError, NotFound,
)
from ._types import (
    DEFAULT_BIN_COUNT, LayoutDocument, LayoutFormat, LayoutSummary,
    SeriesConfig, Statistics, clamp_bin_count,
)

logger = logging.getLogger(__name__)

UNIFIED_ROOT = "UnifiedChartLayoutWithMetadata"
SINGLE_ROOT = "HistogramChartLayout"
UNIFIED_VERSION = "2.0"
SINGLE_VERSION = "1.0"
LEGACY_DESCRIPTION = "Legacy layout file (no metadata)"

_BLOB_TAGS = ("ChartLayout", "DevExpressChartLayout")
_LEGACY_MARKERS = ("pane", "series", "diagram", "axis")

_STAT_FIELDS = (
    ("Count", "count"),
    ("Mean", "mean"),
    ("StandardDeviation", "std"),
    ("Minimum", "minimum"),
    ("Maximum", "maximum"),
)


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

def _check_exists(path: Path) -> None:
    if not path.is_file():
        raise NotFound(path, "Layout file")


def detect_format(path: str | Path) -> LayoutFormat:
    """Identify the document shape from its root element only."""
    path = Path(path)
    _check_exists(path)
    tag = None
    with path.open("rb") as fh:
        try:
            for _event, elem in ET.iterparse(fh, events=("start",)):
                tag = elem.tag
                break
        except ET.ParseError:
            return LayoutFormat.LEGACY
    if tag == UNIFIED_ROOT:
        return LayoutFormat.UNIFIED
    if tag == SINGLE_ROOT:
        return LayoutFormat.SINGLE
    return LayoutFormat.LEGACY


# ---------------------------------------------------------------------------
# Element helpers
# ---------------------------------------------------------------------------

def _text(parent: ET.Element, tag: str, default: str = "") -> str:
    child = parent.find(tag)
    if child is None or child.text is None:
        return default
    return child.text.strip()


def _float_or_none(parent: ET.Element, tag: str, path: Path) -> float | None:
    raw = _text(parent, tag)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise InvalidDocument(f"{tag} is not a number: {raw!r}", path) from None


def _parse_bin_count(raw: str, path: Path) -> int:
    """Bin counts may be stored as integers or decimals ("10", "10.0")."""
    if not raw:
        return DEFAULT_BIN_COUNT
    try:
        value = float(raw)
    except ValueError:
        raise InvalidDocument(f"BinCount is not a number: {raw!r}", path) from None
    return clamp_bin_count(round(value))


def _parse_datetime(raw: str, path: Path) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        raise InvalidDocument(f"Invalid timestamp: {raw!r}", path) from None


def _sub(parent: ET.Element, tag: str, text: str | None = None) -> ET.Element:
    child = ET.SubElement(parent, tag)
    if text is not None:
        child.text = text
    return child


# ---------------------------------------------------------------------------
# Configuration records
# ---------------------------------------------------------------------------

def _config_to_xml(parent: ET.Element, tag: str,
                   config: SeriesConfig) -> ET.Element:
    node = _sub(parent, tag)
    _sub(node, "HistogramName", config.name)
    _sub(node, "BinCount", str(int(config.bin_count)))
    if config.has_bounds:
        _sub(node, "MinValue", repr(float(config.min_value)))
        _sub(node, "MaxValue", repr(float(config.max_value)))
    if config.saved_at is not None:
        _sub(node, "SavedDateTime", config.saved_at.isoformat())
    _sub(node, "Description", config.description)
    stats = _sub(node, "Statistics")
    for xml_name, attr in _STAT_FIELDS:
        _sub(stats, xml_name, repr(getattr(config.statistics, attr)))
    return node


def _config_from_xml(node: ET.Element, path: Path) -> SeriesConfig:
    stats_node = node.find("Statistics")
    statistics = Statistics()
    if stats_node is not None:
        values = {}
        for xml_name, attr in _STAT_FIELDS:
            value = _float_or_none(stats_node, xml_name, path)
            values[attr] = value if value is not None else 0.0
        values["count"] = int(values["count"])
        statistics = Statistics(**values)
    lo = _float_or_none(node, "MinValue", path)
    hi = _float_or_none(node, "MaxValue", path)
    if (lo is None) != (hi is None):
        lo = hi = None
    return SeriesConfig(
        name=_text(node, "HistogramName"),
        bin_count=_parse_bin_count(_text(node, "BinCount"), path),
        min_value=lo,
        max_value=hi,
        statistics=statistics,
        description=_text(node, "Description"),
        saved_at=_parse_datetime(_text(node, "SavedDateTime"), path),
    )


def _blob_from_xml(root: ET.Element, path: Path) -> bytes:
    for tag in _BLOB_TAGS:
        node = root.find(tag)
        if node is None:
            continue
        text = (node.text or "").strip()
        if node.get("encoding") == "base64":
            try:
                return base64.b64decode(text, validate=True)
            except (binascii.Error, ValueError):
                raise InvalidDocument("Chart layout blob is not valid base64",
                                      path) from None
        return text.encode("utf-8")
    return b""


def _parse_tree(path: Path) -> ET.Element:
    try:
        return ET.parse(str(path)).getroot()
    except ET.ParseError as e:
        raise InvalidDocument(f"Malformed layout document: {e}", path) from e


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------

def _read_unified(path: Path) -> LayoutDocument:
    root = _parse_tree(path)
    version = _text(root, "Version", UNIFIED_VERSION)
    if version != UNIFIED_VERSION:
        logger.warning("%s: unexpected unified layout version %r", path, version)
    unified = root.find("UnifiedConfig")
    configs: list[SeriesConfig] = []
    description = ""
    saved_at = None
    if unified is not None:
        description = _text(unified, "Description")
        saved_at = _parse_datetime(_text(unified, "SavedDateTime"), path)
        histograms = unified.find("Histograms")
        if histograms is not None:
            configs = [_config_from_xml(n, path)
                       for n in histograms.findall("HistogramConfiguration")]
    if not configs:
        raise InvalidDocument("Layout contains no histogram configurations",
                              path)
    blob = _blob_from_xml(root, path)
    if not blob:
        raise InvalidDocument("Layout contains no chart layout data", path)
    return LayoutDocument(format=LayoutFormat.UNIFIED, version=version,
                          blob=blob, configs=configs,
                          description=description, saved_at=saved_at)


def _read_single(path: Path) -> LayoutDocument:
    root = _parse_tree(path)
    version = _text(root, "Version", SINGLE_VERSION)
    node = root.find("HistogramConfig")
    configs = [_config_from_xml(node, path)] if node is not None else []
    if not configs:
        raise InvalidDocument("Layout contains no histogram configuration",
                              path)
    blob = _blob_from_xml(root, path)
    if not blob:
        raise InvalidDocument("Layout contains no chart layout data", path)
    cfg = configs[0]
    return LayoutDocument(format=LayoutFormat.SINGLE, version=version,
                          blob=blob, configs=configs,
                          description=cfg.description, saved_at=cfg.saved_at)


def _read_legacy(path: Path) -> LayoutDocument:
    raw = path.read_bytes()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise FormatUnrecognized("Layout file is not text", path) from None
    lowered = text.lower()
    if "chart" not in lowered or not any(m in lowered for m in _LEGACY_MARKERS):
        raise InvalidFormat("File does not look like a chart layout", path)
    saved_at = datetime.fromtimestamp(path.stat().st_mtime)
    config = SeriesConfig(bin_count=DEFAULT_BIN_COUNT,
                          description=LEGACY_DESCRIPTION, saved_at=saved_at)
    return LayoutDocument(format=LayoutFormat.LEGACY, version="",
                          blob=raw, configs=[config],
                          description=LEGACY_DESCRIPTION, saved_at=saved_at)


_READERS = {
    LayoutFormat.UNIFIED: _read_unified,
    LayoutFormat.SINGLE: _read_single,
    LayoutFormat.LEGACY: _read_legacy,
}


def read_layout(path: str | Path) -> LayoutDocument:
    """Read a layout document of any supported shape."""
    path = Path(path)
    fmt = detect_format(path)
    try:
        doc = _READERS[fmt](path)
    except OSError as e:
        raise LayoutError(f"Could not read layout: {e}", path) from e
    logger.debug("Read %s layout with %d configuration(s) from %s",
                 fmt.name, len(doc.configs), path)
    return doc


def read_single(path: str | Path) -> LayoutDocument:
    """Read a single-histogram (or legacy) layout.

    Raises
    ------
    InvalidOperation
        If the file is a unified multi-histogram layout.
    """
    path = Path(path)
    if detect_format(path) is LayoutFormat.UNIFIED:
        raise InvalidOperation(
            "Unified layout found; read it with read_layout()", path)
    return read_layout(path)


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------

def write_layout(path: str | Path, configs: Sequence[SeriesConfig],
                 blob: bytes, description: str | None = None,
                 saved_at: datetime | None = None) -> Path:
    """Write a unified (version 2.0) layout document."""
    path = Path(path)
    saved_at = saved_at or datetime.now()
    root = ET.Element(UNIFIED_ROOT)
    unified = _sub(root, "UnifiedConfig")
    _sub(unified, "SavedDateTime", saved_at.isoformat())
    _sub(unified, "Description",
         description or "Unified layout for all histograms")
    histograms = _sub(unified, "Histograms")
    for config in configs:
        if config.saved_at is None:
            config = replace(config, saved_at=saved_at)
        _config_to_xml(histograms, "HistogramConfiguration", config)
    layout = _sub(root, "ChartLayout", base64.b64encode(blob).decode("ascii"))
    layout.set("encoding", "base64")
    _sub(root, "Version", UNIFIED_VERSION)
    ET.indent(root)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        ET.ElementTree(root).write(str(path), encoding="utf-8",
                                   xml_declaration=True)
    except OSError as e:
        raise LayoutError(f"Could not write layout: {e}", path) from e
    logger.info("Saved layout with %d histogram(s) to %s", len(configs), path)
    return path


# ---------------------------------------------------------------------------
# Directory listing
# ---------------------------------------------------------------------------

def list_layouts(directory: str | Path) -> list[LayoutSummary]:
    """Summaries of the layouts with metadata in *directory*, newest first.

    Legacy files carry no metadata and are not listed. Unreadable files are
    skipped with a warning.
    """
    directory = Path(directory)
    if not directory.is_dir():
        return []
    summaries = []
    for file in sorted(directory.glob("*.xml")):
        try:
            if detect_format(file) is LayoutFormat.LEGACY:
                continue
            doc = read_layout(file)
        except (LayoutError, OSError) as e:
            logger.warning("Error reading layout file %s: %s", file, e)
            continue
        summaries.append(LayoutSummary(
            file_name=file.name,
            saved_at=doc.saved_at,
            description=doc.description,
            series_names=tuple(c.name for c in doc.configs),
            data_point_counts=tuple(c.statistics.count for c in doc.configs),
        ))
    summaries.sort(key=lambda s: s.saved_at or datetime.min, reverse=True)
    return summaries
