"""
Unit tests for link code derivation.
"""

import pytest

from hwlink.codes import CHARSET, CODE_LENGTH, derive_code, normalize_code, simple_hash, verify_code

WORLD = "demo"
SECRET = "abc123"


class TestSimpleHash:
    """Test the djb2-style hash."""

    def test_empty_string_is_seed(self):
        assert simple_hash("") == 5381

    def test_single_character(self):
        # (5381 * 33) ^ ord("a")
        assert simple_hash("a") == 177604

    def test_known_message(self):
        assert simple_hash("demo|alice|abc123") == 2017487796

    def test_result_is_unsigned_32_bit(self):
        value = simple_hash("x" * 500)
        assert 0 <= value <= 0xFFFFFFFF

    def test_astral_characters_hash_as_surrogate_pairs(self):
        # U+1F600 contributes 0xD83D then 0xDE00, as a JavaScript string would
        assert simple_hash("demo|\U0001F600|abc123") == 1473046603


class TestDeriveCode:
    """Test code derivation."""

    def test_concrete_vector(self):
        assert derive_code(WORLD, "alice", SECRET) == "NXU15W"

    def test_additional_vectors(self):
        assert derive_code(WORLD, "bob", SECRET) == "T9DN3R"
        assert derive_code(
            "slaparena",
            "Player1",
            "8d51ff7ae9ceee41b23e6b14913bd71e13dcc9a3477e34ae7dee25466de7b73b",
        ) == "6AN4W1"

    def test_empty_inputs_still_hash_separators(self):
        # message is "||", not the empty string
        assert simple_hash("||") == 5861509
        assert derive_code("", "", "") == "65WK61"

    def test_deterministic(self):
        first = derive_code(WORLD, "alice", SECRET)
        second = derive_code(WORLD, "alice", SECRET)
        assert first == second

    @pytest.mark.parametrize("username", ["alice", "Bob", "x", "Player With Spaces", "ünïcødé", "\U0001F600"])
    def test_output_shape(self, username):
        code = derive_code(WORLD, username, SECRET)
        assert len(code) == CODE_LENGTH
        assert all(ch in CHARSET for ch in code)
        assert code == code.upper()

    def test_alphabet_excludes_ambiguous_characters(self):
        for ch in "0OIL":
            assert ch not in CHARSET

    def test_sensitive_to_each_input(self):
        base = derive_code(WORLD, "alice", SECRET)
        assert derive_code("demp", "alice", SECRET) == "C9DP3G"
        assert derive_code(WORLD, "alicf", SECRET) == "RQE4YV"
        assert derive_code(WORLD, "alice", "abc124") == "MXU15W"
        for other in ("C9DP3G", "RQE4YV", "MXU15W"):
            assert other != base

    def test_order_and_separator_matter(self):
        assert derive_code("alice", WORLD, SECRET) != derive_code(WORLD, "alice", SECRET)

    def test_astral_username(self):
        assert derive_code(WORLD, "\U0001F600", SECRET) == "C3UTWC"


class TestVerifyCode:
    """Test verification helpers."""

    def test_verify_correct_code(self):
        assert verify_code("NXU15W", "alice", WORLD, SECRET) is True

    def test_verify_is_case_insensitive(self):
        assert verify_code("nxu15w", "alice", WORLD, SECRET) is True
        assert verify_code(derive_code(WORLD, "bob", SECRET).lower(), "bob", WORLD, SECRET) is True

    def test_verify_wrong_user(self):
        assert verify_code("NXU15W", "bob", WORLD, SECRET) is False

    def test_verify_empty_code(self):
        assert verify_code("", "alice", WORLD, SECRET) is False
        assert verify_code(None, "alice", WORLD, SECRET) is False

    def test_surrounding_whitespace_is_not_accepted(self):
        assert verify_code("NXU15W ", "alice", WORLD, SECRET) is False
        assert verify_code(" nxu15w", "alice", WORLD, SECRET) is False

    def test_normalize_code(self):
        assert normalize_code("nxu15w") == "NXU15W"
        assert normalize_code(" nxu15w ") == " NXU15W "
        assert normalize_code(None) == ""
        assert normalize_code("") == ""
