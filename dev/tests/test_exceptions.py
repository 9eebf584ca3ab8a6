import pytest

from assetpatch.exceptions import (
    BaseError,
    ConfigurationError,
    CorruptPatchError,
    FileOperationError,
    PatchCancelledError,
    PatchError,
    ValidationError,
)


def test_corrupt_patch_error_carries_reason_and_offset():
    exc = CorruptPatchError(reason="bad magic", offset=0)

    assert isinstance(exc, PatchError)
    assert isinstance(exc, BaseError)
    assert str(exc) == "Corrupt patch: bad magic"
    assert exc.error_code == "CORRUPT_PATCH"
    assert exc.details == {"reason": "bad magic", "offset": 0}


def test_to_dict_is_structured():
    payload = PatchCancelledError(new_position=42).to_dict()

    assert payload["error_code"] == "PATCH_CANCELLED"
    assert payload["message"] == "Patch cancelled."
    assert payload["details"] == {"new_position": 42}
    assert "timestamp" in payload


def test_validation_error_is_configuration_error():
    exc = ValidationError("bad", field_name="patching.buffer_size", expected_type="int")

    assert isinstance(exc, ConfigurationError)
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details["field_name"] == "patching.buffer_size"


def test_file_operation_error_details():
    exc = FileOperationError("refused", file_path="a.bin", operation="write")

    assert exc.error_code == "FILE_OP_ERROR"
    assert exc.details == {"file_path": "a.bin", "operation": "write"}


def test_patch_errors_are_catchable_as_base_error():
    with pytest.raises(BaseError):
        raise CorruptPatchError("short read")
