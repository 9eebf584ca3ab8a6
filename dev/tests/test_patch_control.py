from __future__ import annotations

import io

import pytest

from assetpatch.exceptions import CorruptPatchError
from assetpatch.patching.control import CONTROL_RECORD_SIZE, ControlDecoder, ControlTriple
from assetpatch.patching.segments import SegmentStream


def _decoder(raw: bytes) -> ControlDecoder:
    return ControlDecoder(SegmentStream("control", io.BytesIO(raw), "none"))


def test_decodes_triple_with_negative_seek(encode) -> None:
    decoder = _decoder(encode(8) + encode(0) + encode(-3))

    triple = decoder.read_triple()

    assert triple == ControlTriple(copy_len=8, extra_len=0, seek_offset=-3)
    assert decoder.records_read == 1


def test_decodes_records_in_order(encode) -> None:
    raw = b"".join(encode(v) for v in (1, 2, 3, 40, 50, -60))
    decoder = _decoder(raw)

    assert decoder.read_triple() == (1, 2, 3)
    assert decoder.read_triple() == (40, 50, -60)
    assert decoder.records_read == 2


def test_truncated_record_is_corrupt(encode) -> None:
    raw = (encode(1) + encode(2) + encode(3))[: CONTROL_RECORD_SIZE - 4]

    with pytest.raises(CorruptPatchError) as excinfo:
        _decoder(raw).read_triple()
    assert excinfo.value.details["segment"] == "control"


def test_exhausted_stream_is_corrupt() -> None:
    with pytest.raises(CorruptPatchError):
        _decoder(b"").read_triple()
