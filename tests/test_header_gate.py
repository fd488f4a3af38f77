from __future__ import annotations

from pathlib import Path

import pytest

from stdf_fixtures import MIR, write_stdf
from stdfprr.config import ExtractorConfig
from stdfprr.core.header_gate import StructuralError, check_file_header
from stdfprr.core.io import PagedReader
from stdfprr.core.stdf import encode_far, encode_prr, encode_record


def test_supported_pair_passes_and_rewinds(tmp_path: Path) -> None:
    path = write_stdf(tmp_path, encode_far(), encode_prr())
    with PagedReader(str(path)) as r:
        far = check_file_header(r, ExtractorConfig())
        assert (far.cpu_type, far.stdf_version) == (2, 4)
        assert r.tell() == 0


@pytest.mark.parametrize(
    "cpu,version,needle",
    [(1, 4, "CPU type"), (0, 4, "CPU type"), (2, 3, "STDF version"), (2, 5, "STDF version")],
)
def test_unsupported_pair(tmp_path: Path, cpu: int, version: int, needle: str) -> None:
    path = write_stdf(tmp_path, encode_far(cpu, version), encode_prr())
    with PagedReader(str(path)) as r:
        with pytest.raises(StructuralError, match=needle):
            check_file_header(r, ExtractorConfig())


def test_first_record_not_far(tmp_path: Path) -> None:
    path = write_stdf(tmp_path, MIR, encode_far())
    with PagedReader(str(path)) as r:
        with pytest.raises(StructuralError, match="does not start with a FAR"):
            check_file_header(r, ExtractorConfig())


def test_atr_first_is_not_a_far(tmp_path: Path) -> None:
    # ATR shares REC_TYP 0 with FAR
    path = write_stdf(tmp_path, encode_record(0, 20, b"\x02\x04"), encode_prr())
    with PagedReader(str(path)) as r:
        with pytest.raises(StructuralError, match="subtype: 20"):
            check_file_header(r, ExtractorConfig())


def test_truncated_far(tmp_path: Path) -> None:
    path = write_stdf(tmp_path, encode_far()[:5])
    with PagedReader(str(path)) as r:
        with pytest.raises(StructuralError, match="Unreadable"):
            check_file_header(r, ExtractorConfig())


def test_far_with_short_payload(tmp_path: Path) -> None:
    path = write_stdf(tmp_path, encode_record(0, 10, b"\x02"))
    with PagedReader(str(path)) as r:
        with pytest.raises(StructuralError):
            check_file_header(r, ExtractorConfig())


def test_configured_pair(tmp_path: Path) -> None:
    path = write_stdf(tmp_path, encode_far(1, 4))
    config = ExtractorConfig(supported_cpu_type=1)
    with PagedReader(str(path)) as r:
        assert check_file_header(r, config).cpu_type == 1
