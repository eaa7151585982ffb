"""Tests for unified diff parsing."""

from gitty.core.diff_parser import changed_lines, parse_hunk_header, parse_hunks, render_hunks
from gitty.models.diff import Hunk, LineType

SINGLE_FILE_DIFF = """diff --git a/a.txt b/a.txt
index 1111111..2222222 100644
--- a/a.txt
+++ b/a.txt
@@ -1,4 +1,4 @@
 first
-second
+second changed
 third
 fourth
"""

MULTI_FILE_DIFF = """diff --git a/a.txt b/a.txt
--- a/a.txt
+++ b/a.txt
@@ -1 +1 @@
-old
+new
diff --git a/b.txt b/b.txt
--- a/b.txt
+++ b/b.txt
@@ -3,2 +3,3 @@ def section():
 keep
+added
 tail
"""


def test_parse_hunk_header_defaults_counts_to_one():
    """Omitted line counts mean a single line."""
    hunk = parse_hunk_header("@@ -7 +9 @@")
    assert (hunk.old_start, hunk.old_lines, hunk.new_start, hunk.new_lines) == (7, 1, 9, 1)


def test_parse_hunk_header_rejects_other_lines():
    assert parse_hunk_header("--- a/a.txt") is None
    assert parse_hunk_header(" context") is None


def test_parse_hunks_classifies_lines_and_numbers_them():
    """Context advances both sides, removals the old side, additions the new side."""
    hunks = parse_hunks(SINGLE_FILE_DIFF)
    assert len(hunks) == 1
    lines = hunks[0].lines

    assert [line.type for line in lines] == [
        LineType.CONTEXT,
        LineType.REMOVE,
        LineType.ADD,
        LineType.CONTEXT,
        LineType.CONTEXT,
    ]
    assert [(line.old_line, line.new_line) for line in lines] == [
        (1, 1),
        (2, None),
        (None, 2),
        (3, 3),
        (4, 4),
    ]
    assert lines[2].content == "second changed"


def test_parse_hunks_skips_no_newline_marker():
    diff_text = "@@ -1 +1 @@\n-old\n\\ No newline at end of file\n+new\n\\ No newline at end of file\n"
    hunks = parse_hunks(diff_text)
    assert [line.render() for line in hunks[0].lines] == ["-old", "+new"]


def test_file_headers_end_a_hunk():
    """Headers of the next file never leak into the previous hunk."""
    hunks = parse_hunks(MULTI_FILE_DIFF)
    assert len(hunks) == 2
    assert [line.render() for line in hunks[0].lines] == ["-old", "+new"]
    assert [line.render() for line in hunks[1].lines] == [" keep", "+added", " tail"]
    assert hunks[1].lines[1].new_line == 4


def test_parse_hunks_without_hunks():
    assert parse_hunks("") == []
    assert parse_hunks("Binary files a/x.png and b/x.png differ\n") == []


def test_changed_lines_per_side():
    changes = changed_lines(parse_hunks(SINGLE_FILE_DIFF))
    assert changes.removed == {2}
    assert changes.added == {2}


def test_render_hunks_reproduces_the_body():
    hunks = parse_hunks(SINGLE_FILE_DIFF)
    assert render_hunks(hunks) == (
        "@@ -1,4 +1,4 @@\n first\n-second\n+second changed\n third\n fourth"
    )


def test_render_hunks_keeps_original_headers():
    """Short counts and section text after the header survive a round trip."""
    hunks = parse_hunks(MULTI_FILE_DIFF)
    assert hunks[0].header == "@@ -1 +1 @@"
    assert hunks[1].header == "@@ -3,2 +3,3 @@ def section():"
    assert render_hunks(hunks) == (
        "@@ -1 +1 @@\n-old\n+new\n@@ -3,2 +3,3 @@ def section():\n keep\n+added\n tail"
    )


def test_built_hunk_header_has_explicit_counts():
    assert Hunk(old_start=2, old_lines=1, new_start=2, new_lines=3).header == "@@ -2,1 +2,3 @@"
