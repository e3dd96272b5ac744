from relay.services.canned_content import load_canned


def test_bundled_sections_are_loaded():
    for section in ("jokes", "flirts", "compliments", "insults", "meme_bottoms"):
        lines = load_canned(section)
        assert lines
        assert all(isinstance(line, str) and line for line in lines)


def test_missing_file_uses_fallbacks(tmp_path):
    assert load_canned("jokes", tmp_path / "missing.yaml") == ["I forgot the punchline."]


def test_custom_file(tmp_path):
    path = tmp_path / "canned.yaml"
    path.write_text("jokes:\n  - one\n  - ''\n  - two\ninsults: []\n", encoding="utf-8")

    assert load_canned("jokes", path) == ["one", "two"]
    assert load_canned("insults", path) == ["You silly goose!"]


def test_unknown_section():
    assert load_canned("limericks") == []
