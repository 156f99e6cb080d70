"""Tests for random password generation."""

import string

import pytest

from credvault.core.exceptions import ValidationError
from credvault.utils.passwords import SYMBOLS, generate_password


class TestGeneratePassword:

    def test_default_length(self):
        assert len(generate_password()) == 16

    @pytest.mark.parametrize("length", [4, 12, 64, 256])
    def test_requested_length(self, length):
        assert len(generate_password(length)) == length

    def test_contains_each_required_class(self):
        for _ in range(50):
            password = generate_password(4)
            assert any(c in string.ascii_lowercase for c in password)
            assert any(c in string.ascii_uppercase for c in password)
            assert any(c in string.digits for c in password)

    def test_symbols_only_when_requested(self):
        for _ in range(50):
            assert not any(c in SYMBOLS for c in generate_password(32))
            assert any(c in SYMBOLS for c in generate_password(4, symbols=True))

    @pytest.mark.parametrize("length", [0, 3, 257, -1])
    def test_rejects_out_of_range_length(self, length):
        with pytest.raises(ValidationError):
            generate_password(length)

    def test_rejects_non_integer_length(self):
        with pytest.raises(ValidationError):
            generate_password("16")

    def test_outputs_differ(self):
        assert len({generate_password(24) for _ in range(100)}) == 100
