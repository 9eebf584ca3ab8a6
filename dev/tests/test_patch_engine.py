from __future__ import annotations

import io

import pytest

from assetpatch.exceptions import CorruptPatchError, PatchCancelledError
from assetpatch.patching import (
    CallbackReporter,
    CancelToken,
    RecordingReporter,
    apply_patch,
    bytes_opener,
    file_opener,
)

OLD = b"ABCDEFGH"


def _apply(old: bytes, patch: bytes, **kwargs) -> bytes:
    output = io.BytesIO()
    apply_patch(io.BytesIO(old), bytes_opener(patch), output, **kwargs)
    return output.getvalue()


def _reference_apply(old, controls, diff, extra) -> bytes:
    out = bytearray()
    old_pos = diff_pos = extra_pos = 0
    for copy_len, extra_len, seek in controls:
        for i in range(copy_len):
            pos = old_pos + i
            old_byte = old[pos] if 0 <= pos < len(old) else 0
            out.append((diff[diff_pos + i] + old_byte) & 0xFF)
        diff_pos += copy_len
        old_pos += copy_len
        out += extra[extra_pos:extra_pos + extra_len]
        extra_pos += extra_len
        old_pos += seek
    return bytes(out)


def test_zero_diff_reproduces_old_file(make_patch) -> None:
    patch = make_patch([(8, 0, 0)], diff=b"\x00" * 8)

    assert _apply(OLD, patch) == b"ABCDEFGH"


def test_extra_only_patch(make_patch) -> None:
    patch = make_patch([(0, 5, 0)], extra=b"HELLO")

    assert _apply(OLD, patch) == b"HELLO"


def test_merge_wraps_modulo_256(make_patch) -> None:
    patch = make_patch([(2, 0, 0)], diff=b"\x02\xff")

    assert _apply(b"\xff\x01", patch) == b"\x01\x00"


def test_old_bytes_past_eof_count_as_zero(make_patch) -> None:
    patch = make_patch([(2, 0, 100), (3, 0, 0)], diff=b"\x00\x00xyz")

    assert _apply(OLD, patch) == b"ABxyz"


def test_copy_straddling_old_eof(make_patch) -> None:
    patch = make_patch([(0, 0, 6), (4, 0, 0)], diff=b"\x01\x01\x01\x01")

    assert _apply(OLD, patch) == b"HI\x01\x01"


def test_exact_sum_succeeds_short_sum_fails(make_patch) -> None:
    exact = make_patch([(4, 0, 0), (0, 4, 0)], diff=b"\x00" * 4, extra=b"WXYZ")
    assert _apply(OLD, exact) == b"ABCDWXYZ"

    short = make_patch([(4, 0, 0)], diff=b"\x00" * 4, new_size=8)
    with pytest.raises(CorruptPatchError):
        _apply(OLD, short)


def test_copy_past_new_size_is_corrupt(make_patch) -> None:
    patch = make_patch([(10, 0, 0)], diff=b"\x00" * 10, new_size=8)

    with pytest.raises(CorruptPatchError) as excinfo:
        _apply(OLD, patch)
    assert excinfo.value.details["copy_len"] == 10


def test_extra_past_new_size_is_corrupt(make_patch) -> None:
    patch = make_patch([(0, 10, 0)], extra=b"0123456789", new_size=5)

    with pytest.raises(CorruptPatchError):
        _apply(OLD, patch)


def test_negative_copy_length_is_corrupt(make_patch) -> None:
    patch = make_patch([(-1, 0, 0)], new_size=1)

    with pytest.raises(CorruptPatchError):
        _apply(OLD, patch)


def test_copy_from_negative_old_position_is_corrupt(make_patch) -> None:
    patch = make_patch([(0, 0, -5), (2, 0, 0)], diff=b"\x00\x00")

    with pytest.raises(CorruptPatchError):
        _apply(OLD, patch)


def test_missing_diff_bytes_are_corrupt(make_patch) -> None:
    patch = make_patch([(8, 0, 0)], diff=b"\x00" * 3)

    with pytest.raises(CorruptPatchError):
        _apply(OLD, patch)


def test_empty_new_file(make_patch) -> None:
    assert _apply(OLD, make_patch([])) == b""


@pytest.mark.parametrize("buffer_size", [1, 3, 7, 1024 * 1024])
def test_output_independent_of_buffer_size(make_patch, buffer_size: int) -> None:
    old = bytes(range(256)) * 4
    controls = [(100, 10, 50), (200, 0, -300), (50, 5, 0)]
    diff = bytes((i * 7) & 0xFF for i in range(350))
    extra = b"0123456789abcde"
    patch = make_patch(controls, diff=diff, extra=extra)

    result = _apply(old, patch, buffer_size=buffer_size)

    assert len(result) == 365
    assert result == _reference_apply(old, controls, diff, extra)


def test_bz2_segments(make_patch) -> None:
    patch = make_patch([(8, 0, 0)], diff=b"\x00" * 8, codec="bz2")

    assert _apply(OLD, patch) == OLD


def test_invalid_buffer_size(make_patch) -> None:
    with pytest.raises(ValueError):
        _apply(OLD, make_patch([(0, 5, 0)], extra=b"HELLO"), buffer_size=0)


def test_cancel_before_start(make_patch) -> None:
    token = CancelToken()
    token.cancel()
    output = io.BytesIO()

    with pytest.raises(PatchCancelledError):
        apply_patch(io.BytesIO(OLD), bytes_opener(make_patch([(8, 0, 0)], diff=b"\x00" * 8)),
                    output, cancel_token=token)
    assert output.getvalue() == b""


def test_cancel_between_records(make_patch) -> None:
    class SecondCheckCancels:
        def __init__(self) -> None:
            self.calls = 0

        def is_cancelled(self) -> bool:
            self.calls += 1
            return self.calls > 1

    patch = make_patch([(4, 0, 0), (4, 0, 0)], diff=b"\x00" * 8)
    output = io.BytesIO()

    with pytest.raises(PatchCancelledError) as excinfo:
        apply_patch(io.BytesIO(OLD), bytes_opener(patch), output, cancel_token=SecondCheckCancels())

    assert output.getvalue() == b"ABCD"
    assert excinfo.value.details["new_position"] == 4


def test_reporter_receives_lifecycle_events(make_patch) -> None:
    reporter = RecordingReporter()
    patch = make_patch([(4, 0, 0), (0, 4, 0)], diff=b"\x00" * 4, extra=b"WXYZ")

    _apply(OLD, patch, reporter=reporter, progress_interval=4)

    kinds = reporter.kinds()
    assert kinds[0] == "header"
    assert kinds[-1] == "completed"
    assert "progress" in kinds
    assert reporter.events[0].details["new_size"] == 8


def test_callback_reporter_receives_events(make_patch) -> None:
    events = []

    _apply(OLD, make_patch([(0, 5, 0)], extra=b"HELLO"), reporter=CallbackReporter(events.append))

    assert [event.kind for event in events] == ["header", "completed"]
    assert events[-1].details == {"new_size": 5}


def test_reporter_receives_failure(make_patch) -> None:
    reporter = RecordingReporter()
    patch = bytearray(make_patch([(0, 5, 0)], extra=b"HELLO"))
    patch[0] = ord("X")

    with pytest.raises(CorruptPatchError):
        _apply(OLD, bytes(patch), reporter=reporter)

    assert reporter.kinds() == ["failed"]
    assert reporter.events[0].details["error_code"] == "CORRUPT_PATCH"


def test_all_patch_cursors_released_on_corruption(make_patch, tracking_opener) -> None:
    opener = tracking_opener(make_patch([(4, 0, 0)], diff=b"\x00" * 4, new_size=8))

    with pytest.raises(CorruptPatchError):
        apply_patch(io.BytesIO(OLD), opener, io.BytesIO())

    assert len(opener.opened) == 4
    assert opener.all_closed


def test_patch_from_file(tmp_path, make_patch) -> None:
    patch_path = tmp_path / "asset.patch"
    patch_path.write_bytes(make_patch([(8, 0, 0)], diff=b"\x00" * 8))
    output = io.BytesIO()

    header = apply_patch(io.BytesIO(OLD), file_opener(patch_path), output)

    assert header.new_size == 8
    assert output.getvalue() == OLD
