"""Tests for sample parsing, generation and file I/O.

Run:  python -m pytest tests/test_samples.py -v
"""
from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from histoboard._errors import DataFileError, NotFound, SampleParseError
from histoboard._samples import (
    SampleSource, generate_samples, parse_samples, parse_text_entry,
)


class TestParsing:
    def test_mixed_separators(self):
        assert parse_samples("1, 2;3\n4\t5  6") == [1, 2, 3, 4, 5, 6]

    def test_lenient_skips_bad_tokens(self):
        assert parse_samples("Value\n1.5\nabc\n-2e3") == [1.5, -2000.0]

    def test_blank(self):
        assert parse_samples("") == []
        assert parse_samples("  \n ") == []
        assert parse_text_entry("   ") == []

    def test_strict_accepts_numbers(self):
        assert parse_text_entry("1.5, 2.5; 3") == [1.5, 2.5, 3.0]

    def test_strict_reports_first_bad_token(self):
        with pytest.raises(SampleParseError) as exc:
            parse_text_entry("1, 2, x, y")
        assert exc.value.token == "x"
        assert exc.value.position == 3
        assert "x" in str(exc.value)

    def test_non_finite_rejected(self):
        assert parse_samples("1 nan inf -inf 2") == [1.0, 2.0]
        with pytest.raises(SampleParseError):
            parse_text_entry("1 nan")

    def test_strict_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_text_entry("oops")


class TestGenerate:
    def test_seeded_reproducible(self):
        a = generate_samples(50, 10.0, 2.0, np.random.default_rng(42))
        b = generate_samples(50, 10.0, 2.0, np.random.default_rng(42))
        assert a == b
        assert len(a) == 50

    def test_distribution(self):
        data = generate_samples(5000, 50.0, 15.0, np.random.default_rng(1))
        assert np.mean(data) == pytest.approx(50.0, abs=1.0)
        assert np.std(data) == pytest.approx(15.0, abs=1.0)

    def test_non_positive_count(self):
        assert generate_samples(0, 0, 1, np.random.default_rng()) == []


class TestSampleSource:
    def setup_method(self):
        self.src = SampleSource()

    def test_missing_file(self, tmp_path):
        with pytest.raises(NotFound) as exc:
            self.src.load(tmp_path / "nope.txt")
        assert isinstance(exc.value, FileNotFoundError)
        assert "nope.txt" in str(exc.value)

    def test_csv_has_header(self, tmp_path):
        path = self.src.save(tmp_path / "data.csv", [1.0, 2.5])
        assert path.read_text().splitlines() == ["Value", "1.0", "2.5"]

    def test_txt_has_no_header(self, tmp_path):
        path = self.src.save(tmp_path / "data.txt", [3.0])
        assert path.read_text().splitlines() == ["3.0"]

    def test_save_then_load(self, tmp_path):
        values = [0.1, -4.25, 1e-9, 123456.789]
        path = self.src.save(tmp_path / "data.csv", values)
        assert self.src.load(path) == values

    def test_load_comma_separated(self, tmp_path):
        path = tmp_path / "row.txt"
        path.write_text("1,2,3\n4;5 n/a 6\n")
        assert self.src.load(path) == [1, 2, 3, 4, 5, 6]

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "binary.dat"
        path.write_bytes(b"1\n2\n\xff\xfe\x81\n")
        with pytest.raises(DataFileError) as exc:
            self.src.load(path)
        assert isinstance(exc.value, ValueError)
        assert "binary.dat" in str(exc.value)
        assert exc.value.path == path
        assert isinstance(exc.value.__cause__, UnicodeDecodeError)

    def test_unreadable_file(self, tmp_path, monkeypatch):
        path = tmp_path / "locked.txt"
        path.write_text("1 2 3")

        def deny(self, *args, **kwargs):
            raise PermissionError(13, "Permission denied", str(self))

        monkeypatch.setattr(Path, "read_text", deny)
        with pytest.raises(DataFileError) as exc:
            self.src.load(path)
        assert "locked.txt" in str(exc.value)
        assert isinstance(exc.value.__cause__, PermissionError)
