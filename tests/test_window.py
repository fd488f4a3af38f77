from __future__ import annotations

import logging

import pytest

from stdfprr.core.window import ExtractionWindow, format_position, normalize_window


def test_negative_start_clamped(caplog):
    with caplog.at_level(logging.WARNING):
        w = normalize_window(-10, 50, 100)
    assert w == ExtractionWindow(0, 50)
    assert "Negative start" in caplog.text


@pytest.mark.parametrize("end", [-1, -500, 101, 10_000])
def test_end_clamped_to_file_size(end):
    assert normalize_window(0, end, 100) == ExtractionWindow(0, 100)


def test_in_range_values_kept():
    assert normalize_window(10, 20, 100) == ExtractionWindow(10, 20)


@pytest.mark.parametrize("start,end", [(50, 50), (60, 50), (100, -1), (0, 0)])
def test_inverted_or_empty_range(start, end):
    w = normalize_window(start, end, 100)
    assert w.empty
    assert w.span == 0


def test_empty_file_window_is_empty():
    assert normalize_window(0, -1, 0).empty


def test_contains_record_half_open():
    w = ExtractionWindow(10, 20)
    assert w.contains_record(10, 10)
    assert not w.contains_record(10, 11)
    assert not w.contains_record(9, 4)
    assert w.contains_record(16, 4)


def test_shrink_end_never_grows():
    w = ExtractionWindow(0, 50)
    assert w.shrink_end(30) == ExtractionWindow(0, 30)
    assert w.shrink_end(80) == w


def test_format_position():
    assert format_position(26) == "0x1A (26 bytes)"
    assert format_position(0) == "0x0 (0 bytes)"
    assert format_position(-1) == "-0x1 (-1 bytes)"
