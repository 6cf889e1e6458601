"""Tests for the storage error hierarchy."""

import pytest

from kvstore.errors import (
    KeysAlreadyExistStorageError,
    KeysNotFoundStorageError,
    StorageError,
    TypeStorageError,
    UnexpectedStorageError,
    translate_errors,
)


class TestStorageError:
    """Formatting and hierarchy."""

    def test_str_without_context(self) -> None:
        assert str(StorageError("failed")) == "[STORAGE_ERROR] failed"

    def test_str_with_context(self) -> None:
        error = StorageError("failed", namespace="users")

        assert str(error) == "[STORAGE_ERROR] failed (namespace=users)"

    @pytest.mark.parametrize(
        "error",
        [
            UnexpectedStorageError("x"),
            KeysNotFoundStorageError(["a"]),
            KeysAlreadyExistStorageError(["a"]),
            TypeStorageError(["a"]),
        ],
    )
    def test_all_errors_are_storage_errors(self, error: StorageError) -> None:
        assert isinstance(error, StorageError)

    def test_keys_are_kept(self) -> None:
        error = KeysNotFoundStorageError(["a", "b"], namespace="ns")

        assert error.keys == ["a", "b"]
        assert error.error_code == "KEYS_NOT_FOUND"
        assert "'a', 'b'" in error.message


class TestTranslateErrors:
    """translate_errors()."""

    def test_wraps_unknown_errors(self) -> None:
        original = ConnectionError("database unreachable")

        with pytest.raises(UnexpectedStorageError) as exc_info:
            with translate_errors("get_many", "ns"):
                raise original

        assert exc_info.value.cause is original
        assert exc_info.value.__cause__ is original
        assert exc_info.value.context == {"operation": "get_many", "namespace": "ns"}

    def test_keeps_storage_errors(self) -> None:
        original = TypeStorageError(["a"])

        with pytest.raises(TypeStorageError) as exc_info:
            with translate_errors("get_many", "ns"):
                raise original

        assert exc_info.value is original

    def test_ignores_base_exceptions(self) -> None:
        with pytest.raises(KeyboardInterrupt):
            with translate_errors("get_many", "ns"):
                raise KeyboardInterrupt
