"""
Unit tests for field-level encryption.
"""

import base64

from dashauth.core.encryption import FieldCipher, NONCE_SIZE

KEY = "0123456789abcdef0123456789abcdef"


class TestFieldCipher:

    def test_round_trip(self):
        cipher = FieldCipher(KEY)
        blob = cipher.encrypt("Rua das Flores, 123")

        assert blob
        assert "Rua" not in blob
        assert cipher.decrypt(blob) == "Rua das Flores, 123"

    def test_round_trip_unicode_and_empty(self):
        cipher = FieldCipher(KEY)

        assert cipher.decrypt(cipher.encrypt("São Paulo")) == "São Paulo"
        # An empty field still produces a sealed blob
        empty = cipher.encrypt("")
        assert empty
        assert cipher.decrypt(empty) == ""

    def test_fresh_nonce_per_call(self):
        cipher = FieldCipher(KEY)
        first = cipher.encrypt("same")
        second = cipher.encrypt("same")

        assert first != second
        assert base64.b64decode(first)[:NONCE_SIZE] != base64.b64decode(second)[:NONCE_SIZE]

    def test_wrong_key_size_fails_closed(self):
        cipher = FieldCipher("too-short")

        assert cipher.encrypt("secret") == ""
        assert cipher.decrypt(FieldCipher(KEY).encrypt("secret")) == ""

    def test_other_key_cannot_decrypt(self):
        blob = FieldCipher(KEY).encrypt("secret")
        other = FieldCipher("fedcba9876543210fedcba9876543210")

        assert other.decrypt(blob) == ""

    def test_tampered_blob_fails_closed(self):
        cipher = FieldCipher(KEY)
        raw = bytearray(base64.b64decode(cipher.encrypt("secret")))
        raw[-1] ^= 0x01
        tampered = base64.b64encode(bytes(raw)).decode("ascii")

        assert cipher.decrypt(tampered) == ""

    def test_garbage_input_fails_closed(self):
        cipher = FieldCipher(KEY)

        assert cipher.decrypt("not base64 at all!") == ""
        assert cipher.decrypt(base64.b64encode(b"short").decode("ascii")) == ""
        assert cipher.decrypt("") == ""
