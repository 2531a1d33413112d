import base64
import hashlib
import hmac
from datetime import datetime, timezone

import pytest

from src.api.payments.signature import (
    WebhookSignatureVerifier,
    parse_signature_header,
    parse_timestamp,
)
from tests.helpers import WEBHOOK_API_KEY, WEBHOOK_SECRET, sign

BODY = b'{"order_id":"R1","status":"SUCCESS","amount":"25000"}'
NOW = 1_700_000_000


def _flip(data: bytes, index: int) -> bytes:
    mutated = bytearray(data)
    mutated[index] ^= 0x01
    return bytes(mutated)


class TestParseSignatureHeader:
    def test_compound_header(self):
        assert parse_signature_header("t=123, v1=abcd") == {"t": "123", "v1": "abcd"}

    def test_bare_digest_has_no_components(self):
        assert parse_signature_header("abcdef0123") == {}

    def test_base64_padding_is_not_a_component(self):
        parsed = parse_signature_header("q83vEjRWeJA=")
        assert "v1" not in parsed and "t" not in parsed

    def test_timestamps(self):
        assert parse_timestamp("1700000000") == 1_700_000_000
        iso = datetime.fromtimestamp(NOW, tz=timezone.utc).isoformat().replace("+00:00", "Z")
        assert parse_timestamp(iso) == NOW
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp("²") is None


class TestWebhookSignatureVerifier:
    def test_bare_hex_digest(self, verifier):
        assert verifier.verify_signature(BODY, sign(BODY), now=NOW)

    def test_uppercase_hex_digest(self, verifier):
        assert verifier.verify_signature(BODY, sign(BODY).upper(), now=NOW)

    def test_compound_header_with_fresh_timestamp(self, verifier):
        assert verifier.verify_signature(BODY, sign(BODY, timestamp=NOW - 10), now=NOW)

    def test_sha256_component(self, verifier):
        assert verifier.verify_signature(BODY, f"sha256={sign(BODY)}", now=NOW)

    def test_base64_digest(self, verifier):
        digest = hmac.new(WEBHOOK_SECRET.encode(), BODY, hashlib.sha256).digest()
        assert verifier.verify_signature(BODY, base64.b64encode(digest).decode(), now=NOW)

    @pytest.mark.parametrize("index", [0, 5, len(BODY) // 2, len(BODY) - 1])
    def test_body_mutation_is_rejected(self, verifier, index):
        header = sign(BODY)
        assert not verifier.verify_signature(_flip(BODY, index), header, now=NOW)

    @pytest.mark.parametrize("index", [0, 17, 63])
    def test_signature_mutation_is_rejected(self, verifier, index):
        digest = sign(BODY)
        replacement = "0" if digest[index] != "0" else "1"
        mutated = digest[:index] + replacement + digest[index + 1:]
        assert not verifier.verify_signature(BODY, mutated, now=NOW)

    def test_wrong_secret_is_rejected(self, verifier):
        assert not verifier.verify_signature(BODY, sign(BODY, secret="other"), now=NOW)

    def test_missing_header_is_rejected(self, verifier):
        assert not verifier.verify_signature(BODY, None, now=NOW)
        assert not verifier.verify_signature(BODY, "", now=NOW)

    def test_stale_timestamp_is_rejected(self, verifier):
        assert not verifier.verify_signature(BODY, sign(BODY, timestamp=NOW - 301), now=NOW)
        assert not verifier.verify_signature(BODY, sign(BODY, timestamp=NOW + 301), now=NOW)

    def test_timestamp_at_window_edge_is_accepted(self, verifier):
        assert verifier.verify_signature(BODY, sign(BODY, timestamp=NOW - 300), now=NOW)

    def test_stale_timestamp_tolerated_when_not_enforced(self):
        lenient = WebhookSignatureVerifier(secret=WEBHOOK_SECRET, enforce_timestamp=False)
        assert lenient.verify_signature(BODY, sign(BODY, timestamp=NOW - 3600), now=NOW)

    @pytest.mark.parametrize("timestamp", ["not-a-time", "²", "١٧٠٠٠٠٠٠٠٠"])
    def test_unparseable_timestamp_is_rejected(self, verifier, timestamp):
        header = f"t={timestamp},v1={sign(BODY)}"
        assert not verifier.verify_signature(BODY, header, now=NOW)

    @pytest.mark.parametrize("index", [0, 21, 42])
    def test_base64_mutation_is_rejected(self, verifier, index):
        digest = hmac.new(WEBHOOK_SECRET.encode(), BODY, hashlib.sha256).digest()
        encoded = base64.b64encode(digest).decode()
        replacement = "A" if encoded[index] != "A" else "B"
        mutated = encoded[:index] + replacement + encoded[index + 1:]
        assert not verifier.verify_signature(BODY, mutated, now=NOW)

    def test_non_canonical_base64_is_rejected(self, verifier):
        digest = hmac.new(WEBHOOK_SECRET.encode(), BODY, hashlib.sha256).digest()
        encoded = base64.b64encode(digest).decode()
        alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
        # Flip a padding bit in the last data character; the bytes decode the same
        alternate = alphabet[alphabet.index(encoded[-2]) ^ 1]
        mutated = encoded[:-2] + alternate + "="

        assert base64.b64decode(mutated) == digest
        assert not verifier.verify_signature(BODY, mutated, now=NOW)

    def test_missing_timestamp_only_rejected_when_required(self):
        strict = WebhookSignatureVerifier(secret=WEBHOOK_SECRET, require_timestamp=True)
        assert not strict.verify_signature(BODY, sign(BODY), now=NOW)
        assert strict.verify_signature(BODY, sign(BODY, timestamp=NOW), now=NOW)

    def test_missing_secret_fails_closed_in_production(self):
        production = WebhookSignatureVerifier(secret=None, production=True)
        assert not production.verify_signature(BODY, "anything", now=NOW)

    def test_missing_secret_fails_open_outside_production(self):
        development = WebhookSignatureVerifier(secret=None, production=False)
        assert development.verify_signature(BODY, "anything", now=NOW)


class TestApiKeyFallback:
    def test_matching_key(self, verifier):
        assert verifier.verify_api_key(WEBHOOK_API_KEY)

    def test_wrong_or_missing_key(self, verifier):
        assert not verifier.verify_api_key("nope")
        assert not verifier.verify_api_key(None)

    def test_no_key_configured(self):
        assert not WebhookSignatureVerifier(secret=WEBHOOK_SECRET).verify_api_key("")
        assert not WebhookSignatureVerifier(secret=WEBHOOK_SECRET).verify_api_key("x")

    def test_either_credential_authenticates(self, verifier):
        assert verifier.authenticate(BODY, "bad-signature", WEBHOOK_API_KEY, now=NOW)
        assert verifier.authenticate(BODY, sign(BODY), None, now=NOW)
        assert not verifier.authenticate(BODY, "bad-signature", "bad-key", now=NOW)
