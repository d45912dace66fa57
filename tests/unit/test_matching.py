import pytest

from codeloom.matching import (
    DiffStats,
    LineDifference,
    diff_stats,
    format_line_diff,
    glob_to_regex,
    line_diff,
    matches_glob,
)


class TestGlob:
    @pytest.mark.parametrize("path,pattern,expected", [
        ("app.js", "*.js", True),
        ("src/main.js", "*.js", True),
        ("app.css", "*.js", False),
        ("APP.JS", "*.js", True),
        ("src/main.js", "src/*.js", True),
        ("src/lib/util.js", "src/*.js", False),
        ("src/lib/util.js", "src/**/*.js", True),
        ("src/lib/util.js", "src/**", True),
        ("appjs", "app.js", False),
    ])
    def test_matches(self, path, pattern, expected):
        assert matches_glob(path, pattern) is expected

    def test_translation(self):
        assert glob_to_regex("**/*.js").pattern == r".*/[^/]*\.js"

    def test_invalid_regex_falls_back_to_substring(self):
        assert matches_glob("src/(main.js", "(main*") is True
        assert matches_glob("src/other.js", "(main*") is False


class TestLineDiff:
    def test_identical(self):
        assert line_diff("a\nb", "a\nb") == ([], 0)
        assert format_line_diff([], 0) == "No differences"

    def test_changed_added_removed(self):
        diffs, total = line_diff("a\nb\nc", "a\nB")

        assert total == 2
        assert diffs == [
            LineDifference(line=2, old="b", new="B"),
            LineDifference(line=3, old="c", new=None),
        ]
        assert format_line_diff(diffs, total) == "Line 2:\n- b\n+ B\nLine 3:\n- c"

    def test_limit(self):
        old = "\n".join(str(i) for i in range(60))
        new = "\n".join(f"x{i}" for i in range(60))
        diffs, total = line_diff(old, new)

        assert total == 60
        assert len(diffs) == 50
        assert format_line_diff(diffs, total).endswith("... 10 more differences")

    def test_stats(self):
        assert diff_stats(None, "a\nb") == DiffStats(added=2, removed=0)
        assert diff_stats("a\nb", "a\nc") == DiffStats(added=1, removed=1)
        assert str(DiffStats(added=3, removed=1)) == "(+3 -1)"
