"""Tests for the signed OAuth state token."""

import base64
import hashlib
import hmac

import pytest

from oauth_link.oauth.state import (
    CLOCK_SKEW_MS,
    parse_state,
    sign_state,
    verify_state,
)

KEY = "state-signing-key"


class TestSignState:
    def test_token_has_three_fields(self):
        token = sign_state(KEY)
        state_id, issued_at, signature = token.split(".")
        assert state_id and signature
        assert issued_at.isdigit()

    def test_signature_is_hmac_over_id_and_timestamp(self):
        token = sign_state(KEY, now_ms=1_700_000_000_000)
        state_id, issued_at, signature = token.split(".")
        assert issued_at == "1700000000000"

        digest = hmac.new(
            KEY.encode(), f"{state_id}.{issued_at}".encode(), hashlib.sha256
        ).digest()
        assert signature == base64.urlsafe_b64encode(digest).rstrip(b"=").decode()

    def test_ids_are_unique(self):
        ids = {parse_state(sign_state(KEY)).id for _ in range(500)}
        assert len(ids) == 500


class TestVerifyState:
    def test_round_trip(self):
        for _ in range(100):
            assert verify_state(sign_state(KEY), KEY)

    def test_other_key_rejected(self):
        for _ in range(100):
            assert not verify_state(sign_state(KEY), "another-key")

    def test_every_single_character_change_rejected(self):
        token = sign_state(KEY)
        alphabet = "abcXYZ019-_."
        for position, original in enumerate(token):
            for replacement in alphabet:
                if replacement == original:
                    continue
                tampered = token[:position] + replacement + token[position + 1 :]
                assert not verify_state(tampered, KEY), (position, replacement)

    def test_every_bit_flip_rejected(self):
        token = sign_state(KEY)
        for position, original in enumerate(token):
            for bit in range(8):
                flipped = chr(ord(original) ^ (1 << bit))
                tampered = token[:position] + flipped + token[position + 1 :]
                assert not verify_state(tampered, KEY), (position, bit)

    @pytest.mark.parametrize(
        "token",
        [
            "",
            "abc",
            "a.b",
            "a.b.c.d",
            "..",
            "id..sig",
            "id.notanumber.sig",
            "id.-5.sig",
            "id.0123.sig",
        ],
    )
    def test_malformed_tokens_rejected(self, token):
        assert not verify_state(token, KEY)

    def test_non_string_token_rejected(self):
        assert not verify_state(None, KEY)
        assert not verify_state(12345, KEY)

    def test_leading_zero_variant_of_valid_token_rejected(self):
        state_id, issued_at, signature = sign_state(KEY).split(".")
        assert not verify_state(f"{state_id}.0{issued_at}.{signature}", KEY)


class TestStateAge:
    NOW = 1_700_000_000_000

    def test_fresh_token_accepted(self):
        token = sign_state(KEY, now_ms=self.NOW - 60_000)
        assert verify_state(token, KEY, max_age_seconds=600, now_ms=self.NOW)

    def test_expired_token_rejected(self):
        token = sign_state(KEY, now_ms=self.NOW - 601_000)
        assert not verify_state(token, KEY, max_age_seconds=600, now_ms=self.NOW)

    def test_age_ignored_without_max_age(self):
        token = sign_state(KEY, now_ms=self.NOW - 86_400_000)
        assert verify_state(token, KEY, now_ms=self.NOW)

    def test_future_token_within_skew_accepted(self):
        token = sign_state(KEY, now_ms=self.NOW + CLOCK_SKEW_MS - 1)
        assert verify_state(token, KEY, max_age_seconds=600, now_ms=self.NOW)

    def test_future_token_beyond_skew_rejected(self):
        token = sign_state(KEY, now_ms=self.NOW + CLOCK_SKEW_MS + 1)
        assert not verify_state(token, KEY, max_age_seconds=600, now_ms=self.NOW)
