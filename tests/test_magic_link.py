"""
Unit tests for magic-link token generation.
"""

import random
from datetime import datetime, timezone

import pytest

from dashauth.core.magic_link import (
    ALLOWED_CHARS,
    MIN_TOKEN_LENGTH,
    MagicLinkGenerator,
    derive_key_factor,
)


def _at(day: int, second: int) -> datetime:
    return datetime(2025, 3, day, 12, 0, second, tzinfo=timezone.utc)


class TestKeyFactor:

    def test_small_product_kept(self):
        assert derive_key_factor(_at(5, 4)) == 20
        assert derive_key_factor(_at(1, 30)) == 30

    def test_large_product_divided_by_ten(self):
        assert derive_key_factor(_at(31, 59)) == 182
        assert derive_key_factor(_at(4, 8)) == 3

    def test_zero_second(self):
        assert derive_key_factor(_at(17, 0)) == 0


class TestDerivedStrategy:

    def test_letters_map_through_key_factor(self):
        generator = MagicLinkGenerator("k", clock=lambda: _at(5, 4), rng=random.Random(1))
        token = generator.generate("ab@c.io")

        # key factor 20; letters at positions 0, 1, 3, 5, 6
        assert token.startswith("uvxzA")
        assert len(token) == MIN_TOKEN_LENGTH

    def test_padding_uses_allowed_alphabet(self):
        generator = MagicLinkGenerator("k", clock=lambda: _at(5, 4))
        token = generator.generate("x@y.z")

        assert len(token) == MIN_TOKEN_LENGTH
        assert all(c in ALLOWED_CHARS for c in token)

    def test_long_email_not_truncated(self):
        email = "a" * 40 + "@example.com"
        token = MagicLinkGenerator("k", clock=lambda: _at(2, 2)).generate(email)

        assert len(token) == 40 + len("examplecom")

    def test_same_inputs_and_seed_are_repeatable(self):
        first = MagicLinkGenerator("k", clock=lambda: _at(9, 9), rng=random.Random(7)).generate("maria@example.com")
        second = MagicLinkGenerator("k", clock=lambda: _at(9, 9), rng=random.Random(7)).generate("maria@example.com")

        assert first == second

    def test_prefix_is_time_keyed_not_random(self):
        email = "maria.silva@example.com"
        letters = sum(c.isalpha() for c in email)
        first = MagicLinkGenerator("k", clock=lambda: _at(9, 9), rng=random.Random(1)).generate(email)
        second = MagicLinkGenerator("k", clock=lambda: _at(9, 9), rng=random.Random(2)).generate(email)
        later = MagicLinkGenerator("k", clock=lambda: _at(9, 10), rng=random.Random(1)).generate(email)

        assert first[:letters] == second[:letters]
        assert first[:letters] != later[:letters]

    def test_no_transport_breaking_characters(self):
        for second in range(60):
            token = MagicLinkGenerator("k", clock=lambda: _at(13, second)).generate("maria.silva@example.com")
            assert not set(token) & set(" /\\}{|\x00")


class TestSanitize:

    def test_slash_replacement(self):
        # ("_" = 95) * 1 // 2 = 47 -> "/" -> "_"
        assert MagicLinkGenerator("_")._sanitize("/abc", 1) == "_abc"

    def test_nul_becomes_ampersand(self):
        assert MagicLinkGenerator("")._sanitize(" x", 5) == "&x"

    def test_clean_token_unchanged(self):
        assert MagicLinkGenerator("k")._sanitize("abc123!@$&", 7) == "abc123!@$&"


class TestRandomStrategy:

    def test_tokens_are_unpredictable(self):
        generator = MagicLinkGenerator("k", strategy="random", clock=lambda: _at(5, 4))
        tokens = {generator.generate("maria@example.com") for _ in range(5)}

        assert len(tokens) == 5
        assert all(len(t) >= MIN_TOKEN_LENGTH for t in tokens)

    def test_unknown_strategy_refused(self):
        with pytest.raises(ValueError):
            MagicLinkGenerator("k", strategy="sequential")

    def test_unpredictable_overrides_derived(self):
        email = "christopher.montgomery.williamson@example.com"
        generator = MagicLinkGenerator("k", clock=lambda: _at(14, 53))

        token = generator.generate(email, unpredictable=True)

        assert token != generator._derive(email, _at(14, 53))
        assert len(token) >= MIN_TOKEN_LENGTH
