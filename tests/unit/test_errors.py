"""Tests for the exception taxonomy and its JSON rendering."""

import pytest

from seekmix.common import errors
from seekmix.common.errors import (
    AuthenticationError,
    DimensionMismatchError,
    EmbeddingError,
    NotConnectedError,
    SeekMixError,
    SerializationError,
    StorageError,
)


@pytest.mark.unit
class TestTaxonomy:
    @pytest.mark.parametrize(
        ("exc_type", "status", "error_type"),
        [
            (EmbeddingError, 502, "embedding_error"),
            (DimensionMismatchError, 500, "dimension_mismatch"),
            (StorageError, 503, "storage_error"),
            (SerializationError, 400, "serialization_error"),
            (NotConnectedError, 503, "not_connected"),
            (AuthenticationError, 401, "authentication_error"),
        ],
    )
    def test_status_and_type(self, exc_type, status: int, error_type: str) -> None:
        exc = exc_type("boom")
        assert exc.status_code == status
        assert exc.error_type == error_type

    def test_exposed_error_types(self) -> None:
        direct = {cls.__name__ for cls in SeekMixError.__subclasses__()}
        assert direct == {
            "EmbeddingError",
            "StorageError",
            "SerializationError",
            "NotConnectedError",
            "AuthenticationError",
        }
        assert not hasattr(errors, "ValidationError")

    def test_to_response_merges_details(self) -> None:
        exc = StorageError("disk full", details={"namespace": "ns"})
        assert exc.to_response() == {
            "error": {
                "message": "disk full",
                "type": "storage_error",
                "code": 503,
                "namespace": "ns",
            }
        }
