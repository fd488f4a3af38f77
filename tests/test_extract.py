"""End-to-end extraction calls over files on disk."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from stdf_fixtures import MIR, offsets_of, scenario_records, write_stdf
from stdfprr.config import ExtractorConfig
from stdfprr.core.extract import (
    ScanOutcome,
    default_output_path,
    extract_part_results,
    process_message,
)
from stdfprr.core.frequency import TypeFrequency
from stdfprr.core.messages import SyncMessage
from stdfprr.core.serialize import EMPTY_COMMENT, OutputError, load_results, render_json
from stdfprr.core.stdf import encode_far, encode_prr, encode_record

SYNC = 1_740_664_881


def test_three_record_scenario(tmp_path: Path) -> None:
    path = write_stdf(tmp_path, *scenario_records())
    with extract_part_results(path, 0, -1) as result:
        assert result.outcome is ScanOutcome.COMPLETE
        assert result.rejected == 1
        doc = load_results(render_json(result.records, SYNC))
    assert len(doc) == 1
    assert (doc[0]["hard_bin"], doc[0]["soft_bin"]) == (1, 2)
    assert (doc[0]["head_number"], doc[0]["site_number"]) == (1, 1)
    assert doc[0]["eot"] == SYNC
    assert doc[0]["sot"] == SYNC


def test_window_end_inside_second_record(tmp_path: Path) -> None:
    records = scenario_records()
    path = write_stdf(tmp_path, *records)
    end = offsets_of(records)[1] + 6
    with extract_part_results(path, 0, end) as result:
        assert result.outcome is ScanOutcome.COMPLETE
        assert len(result) == 0
        assert render_json(result.records, SYNC).startswith(EMPTY_COMMENT)


@pytest.mark.parametrize("start,end", [(10, 10), (30, 5), (0, 0)])
def test_inverted_window_no_scan(tmp_path: Path, start: int, end: int) -> None:
    path = write_stdf(tmp_path, *scenario_records())
    seen = TypeFrequency(report_every=1)
    with extract_part_results(path, start, end, diagnostics=seen) as result:
        assert result.outcome is ScanOutcome.EMPTY_WINDOW
        assert result.ok
        assert len(result) == 0
        assert result.records_scanned == 0
    assert seen.total == 0


def test_start_past_eof_is_empty(tmp_path: Path) -> None:
    path = write_stdf(tmp_path, *scenario_records())
    with extract_part_results(path, 10_000, -1) as result:
        assert result.outcome is ScanOutcome.EMPTY_WINDOW


def test_missing_file_is_config_error(tmp_path: Path) -> None:
    result = extract_part_results(tmp_path / "nope.stdf")
    assert result.outcome is ScanOutcome.CONFIG_ERROR
    assert not result.usable
    assert len(result) == 0


def test_directory_path_is_config_error(tmp_path: Path) -> None:
    assert extract_part_results(tmp_path).outcome is ScanOutcome.CONFIG_ERROR


@pytest.mark.parametrize("cpu,version", [(1, 4), (2, 3)])
def test_unsupported_platform_structural_error(tmp_path: Path, cpu: int, version: int) -> None:
    path = write_stdf(tmp_path, encode_far(cpu, version), encode_prr())
    with extract_part_results(path) as result:
        assert result.outcome is ScanOutcome.STRUCTURAL_ERROR
        assert len(result) == 0
        assert result.errors


def test_gate_skipped_when_not_starting_at_zero(tmp_path: Path) -> None:
    records = [encode_far(1, 3), MIR, encode_prr(hard_bin=6)]
    path = write_stdf(tmp_path, *records)
    with extract_part_results(path, offsets_of(records)[1]) as result:
        assert result.outcome is ScanOutcome.COMPLETE
        assert [p.hard_bin for p in result.records] == [6]


def test_idempotent_output(tmp_path: Path) -> None:
    records = scenario_records() + [encode_prr(part_id="P/7", elapsed_ms=1500)]
    path = write_stdf(tmp_path, *records)
    outputs = []
    for _ in range(2):
        with extract_part_results(path, 0, -1) as result:
            outputs.append(render_json(result.records, SYNC))
    assert outputs[0] == outputs[1]


def test_incremental_windows_cover_file(tmp_path: Path) -> None:
    """Consecutive windows over a growing file see every PRR exactly once."""
    records = [encode_far()] + [encode_prr(hard_bin=i) for i in range(1, 6)]
    offs = offsets_of(records)
    path = tmp_path / "growing.stdf"
    path.write_bytes(b"".join(records[:3]) + records[3][:5])

    # first sync: 3 full records and a torn 4th
    first_end = path.stat().st_size
    with extract_part_results(path, 0, first_end) as result:
        got = [p.hard_bin for p in result.records]
    assert got == [1, 2]

    # transfer completes; next window starts where the last complete record ended
    path.write_bytes(b"".join(records))
    with extract_part_results(path, offs[3], -1) as result:
        got += [p.hard_bin for p in result.records]
    assert got == [1, 2, 3, 4, 5]


def test_abort_keeps_partial_results(tmp_path: Path) -> None:
    records = [encode_far(), encode_prr(hard_bin=1), encode_record(1, 10, b"z" * 200), encode_prr()]
    path = write_stdf(tmp_path, *records)
    config = ExtractorConfig(max_record_length=100)
    with extract_part_results(path, config=config) as result:
        assert result.outcome is ScanOutcome.ABORTED
        assert result.usable and not result.ok
        assert [p.hard_bin for p in result.records] == [1]


def test_result_releases_sink(tmp_path: Path) -> None:
    path = write_stdf(tmp_path, *scenario_records())
    with extract_part_results(path) as result:
        assert len(result) == 1
    assert result.sink.released


def test_custom_alias_config(tmp_path: Path) -> None:
    path = write_stdf(tmp_path, encode_far(), encode_prr(rec_type=16))
    config = ExtractorConfig(target_type_codes=frozenset({5, 16}))
    with extract_part_results(path, config=config) as result:
        assert len(result) == 1
    with extract_part_results(path) as result:
        assert len(result) == 0


def test_canonical_code_can_be_configured_out(tmp_path: Path) -> None:
    path = write_stdf(tmp_path, encode_far(), encode_prr(rec_type=5), encode_prr(rec_type=25))
    config = ExtractorConfig(target_type_codes=frozenset({16, 25, 185}))
    with extract_part_results(path, config=config) as result:
        assert result.outcome is ScanOutcome.COMPLETE
        assert len(result) == 1


def test_process_message_writes_document(tmp_path: Path) -> None:
    write_stdf(tmp_path, *scenario_records(), name="lot.stdf_open")
    msg = SyncMessage("lot.stdf_open", 0, -1, SYNC)
    out_dir = tmp_path / "out"
    summary = process_message(msg, output_dir=out_dir, base_dir=tmp_path)

    assert summary.outcome is ScanOutcome.COMPLETE
    assert summary.record_count == 1
    assert summary.output_path == default_output_path(msg, out_dir)
    data = json.loads(summary.output_path.read_text())
    assert data[0]["eot"] == SYNC


def test_process_message_empty_window_still_writes(tmp_path: Path) -> None:
    write_stdf(tmp_path, *scenario_records(), name="lot.stdf")
    msg = SyncMessage(str(tmp_path / "lot.stdf"), 20, 20, SYNC)
    out = tmp_path / "r.json"
    summary = process_message(msg, output_path=out)
    assert summary.written
    assert out.read_text().startswith(EMPTY_COMMENT)


def test_process_message_structural_error_writes_nothing(tmp_path: Path) -> None:
    write_stdf(tmp_path, encode_far(1, 4), encode_prr(), name="bad.stdf")
    out = tmp_path / "r.json"
    summary = process_message(SyncMessage(str(tmp_path / "bad.stdf"), sync_time=SYNC), output_path=out)
    assert summary.outcome is ScanOutcome.STRUCTURAL_ERROR
    assert not summary.written
    assert not out.exists()


def test_process_message_output_error(tmp_path: Path) -> None:
    write_stdf(tmp_path, *scenario_records(), name="lot.stdf")
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    with pytest.raises(OutputError):
        process_message(
            SyncMessage(str(tmp_path / "lot.stdf"), sync_time=SYNC),
            output_path=blocker / "r.json",
        )
