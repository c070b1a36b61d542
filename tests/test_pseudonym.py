from api.pseudonym import ADJECTIVES, NOUNS, generate_pseudonym, hash_string


class TestHash:
    def test_known_values(self):
        assert hash_string("") == 0
        assert hash_string("a") == 97
        assert hash_string("anon") == 2998988

    def test_wraps_to_32_bits(self):
        h = hash_string("anon_test_000")
        assert h == 4123093270
        assert 0 <= h < 2 ** 32

    def test_astral_characters_hash_as_two_units(self):
        # U+1F600 is the surrogate pair D83D DE00 in UTF-16.
        assert hash_string("\U0001F600") == (0xD83D * 31 + 0xDE00)


class TestGeneratePseudonym:
    def test_fixed_pairs(self):
        assert generate_pseudonym("anon_test_000") == "BraveWillow-770"
        assert generate_pseudonym("anon_x") == "GentleStar-233"
        assert generate_pseudonym("anon_y") == "KindStar-234"
        assert generate_pseudonym("anon_abc123_xyz") == "GentleLantern-993"

    def test_empty_and_none_default_to_anon(self):
        assert generate_pseudonym("") == generate_pseudonym("anon") == "CaringLantern-288"
        assert generate_pseudonym(None) == "CaringLantern-288"

    def test_deterministic(self):
        ids = ["anon_abc_1", "anon_zz9_k3", "anon_q"]
        assert [generate_pseudonym(i) for i in ids] == [generate_pseudonym(i) for i in ids]

    def test_shape(self):
        for i in range(50):
            label = generate_pseudonym(f"anon_{i}_x")
            name, number = label.rsplit("-", 1)
            assert 100 <= int(number) <= 999
            assert any(name.startswith(a) and name[len(a):] in NOUNS for a in ADJECTIVES)

    def test_tables_are_ordered_and_complete(self):
        assert len(ADJECTIVES) == 10 and len(NOUNS) == 10
        assert ADJECTIVES[0] == "Brave" and ADJECTIVES[-1] == "Soft"
        assert NOUNS[0] == "Harbor" and NOUNS[-1] == "Ember"
