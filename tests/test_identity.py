"""Tests for machine identity generation."""

import re
from unittest.mock import patch

import pytest

from fog.identity import generate_machine_id


class TestGenerateMachineId:
    def test_is_64_lowercase_hex_chars(self) -> None:
        """32 random bytes hex-encode to 64 lowercase characters."""
        machine_id = generate_machine_id()
        assert re.fullmatch(r"[0-9a-f]{64}", machine_id)

    def test_no_collisions_across_many_calls(self) -> None:
        ids = {generate_machine_id() for _ in range(10_000)}
        assert len(ids) == 10_000

    def test_entropy_failure_propagates(self) -> None:
        """A broken entropy source is not papered over."""
        with (
            patch("fog.identity.secrets.token_hex", side_effect=OSError("getrandom failed")),
            pytest.raises(OSError, match="getrandom"),
        ):
            generate_machine_id()
