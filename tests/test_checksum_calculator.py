"""
Tests for the block checksum service
"""
import hashlib
import io

import pytest

from astrometa.core.services import checksum_calculator as module
from astrometa.core.services.checksum_calculator import (
    BlockChecksumCalculator, get_checksum_calculator, reset_checksum_calculator,
)
from astrometa.exceptions import AttachmentReadError


class TestBlockChecksumCalculator:
    """Test digest calculation over buffers and byte ranges."""

    @pytest.fixture
    def calculator(self):
        return BlockChecksumCalculator(buffer_size=7)

    @pytest.mark.parametrize("algorithm,hashlib_name", [
        ("sha-1", "sha1"),
        ("SHA1", "sha1"),
        ("sha-256", "sha256"),
        ("sha-512", "sha512"),
        ("sha3-256", "sha3_256"),
        ("sha3-512", "sha3_512"),
    ])
    def test_supported_algorithms(self, calculator, algorithm, hashlib_name):
        data = b'0123456789' * 5
        assert calculator.is_supported(algorithm)
        assert calculator.calculate_bytes(data, algorithm) == hashlib.new(hashlib_name, data).hexdigest()

    def test_unsupported_algorithm(self, calculator):
        assert not calculator.is_supported("md5")
        with pytest.raises(ValueError):
            calculator.calculate_bytes(b'', "md5")

    def test_range_spans_several_buffers(self, calculator):
        data = b'header' + bytes(range(50)) + b'trailer'
        digest = calculator.calculate_range(io.BytesIO(data), 6, 50, "sha-1")
        assert digest == hashlib.sha1(bytes(range(50))).hexdigest()

    def test_range_past_end(self, calculator):
        with pytest.raises(AttachmentReadError) as exc_info:
            calculator.calculate_range(io.BytesIO(b'short'), 2, 10, "sha-1")
        assert exc_info.value.error_code == "BLOCK_TRUNCATED"

    def test_empty_range(self, calculator):
        assert calculator.calculate_range(io.BytesIO(b'abc'), 1, 0, "sha-1") == hashlib.sha1(b'').hexdigest()


class TestGlobalCalculator:
    """Test the shared calculator instance."""

    def test_singleton(self):
        assert get_checksum_calculator() is get_checksum_calculator()

    def test_reset(self):
        first = get_checksum_calculator()
        reset_checksum_calculator()
        assert module._global_calculator is None
        assert get_checksum_calculator() is not first
