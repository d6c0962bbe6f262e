"""Tests for managed block extraction and injection."""

from __future__ import annotations

import logging

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from stepforge.codegen.blocks import (
    BLOCK_END_TOKEN,
    BLOCK_START_TOKEN,
    NewBlock,
    end_marker,
    extract_managed_blocks,
    inject_managed_blocks,
    is_end_marker,
    is_start_marker,
    start_marker,
    wrap_in_block,
)

BEGIN = f"// {BLOCK_START_TOKEN}"
END = f"// {BLOCK_END_TOKEN}"

# Block content never contains a marker token
contents = st.text(
    alphabet=st.characters(exclude_characters=":", exclude_categories=("Cs",)), max_size=40
)
# Any id without whitespace, punctuation included
block_ids = st.one_of(
    st.none(),
    st.text(
        alphabet=st.characters(exclude_categories=("Z", "Cc", "Cs")), min_size=1, max_size=12
    ).filter(lambda s: not any(c.isspace() for c in s)),
    st.sampled_from(["login.smoke", "auth/login", "JRN-0001:AC-1"]),
)


@st.composite
def new_blocks(draw: st.DrawFn) -> list[NewBlock]:
    blocks = draw(st.lists(st.builds(NewBlock, content=contents, id=block_ids), max_size=5))
    seen: set[str] = set()
    unique: list[NewBlock] = []
    for block in blocks:
        if block.id is not None:
            if block.id in seen:
                continue
            seen.add(block.id)
        unique.append(block)
    return unique


class TestMarkers:
    def test_markers(self) -> None:
        assert start_marker() == BEGIN
        assert start_marker("login") == f"{BEGIN} id=login"
        assert end_marker(comment="#") == f"# {BLOCK_END_TOKEN}"

    def test_detected_anywhere_on_line(self) -> None:
        assert is_start_marker(f"    /* {BLOCK_START_TOKEN} id=x */")
        assert is_end_marker(f"<!-- {BLOCK_END_TOKEN} -->")
        assert not is_start_marker("// STEPFORGE:BEGIN")

    def test_punctuated_id_round_trips(self) -> None:
        source = wrap_in_block("body", "login.smoke")
        assert extract_managed_blocks(source).blocks[0].id == "login.smoke"

    def test_whitespace_id_rejected(self) -> None:
        with pytest.raises(ValueError):
            NewBlock("body", "login smoke")
        with pytest.raises(ValueError):
            start_marker("a\tb")

    def test_wrap(self) -> None:
        assert wrap_in_block("body", "a", comment="#") == (
            f"# {BLOCK_START_TOKEN} id=a\nbody\n# {BLOCK_END_TOKEN}"
        )


class TestExtract:
    def test_no_blocks(self) -> None:
        extraction = extract_managed_blocks("line 1\nline 2")
        assert not extraction.has_blocks
        assert extraction.preserved_lines == ["line 1", "line 2"]

    def test_blocks_and_preserved_lines(self) -> None:
        source = "\n".join(
            ["import x", f"{BEGIN} id=one", "a", "b", END, "user code", BEGIN, "c", END, "tail"]
        )
        extraction = extract_managed_blocks(source)
        first, second = extraction.blocks
        assert (first.id, first.start_line, first.end_line, first.content) == ("one", 1, 4, "a\nb")
        assert (second.id, second.start_line, second.end_line, second.content) == (None, 6, 8, "c")
        assert extraction.preserved_lines == ["import x", "user code", "tail"]
        assert extraction.warnings == []

    def test_other_comment_syntax(self) -> None:
        source = f"# {BLOCK_START_TOKEN} id=py\nx = 1\n# {BLOCK_END_TOKEN}"
        assert extract_managed_blocks(source).blocks[0].id == "py"

    def test_empty_block(self) -> None:
        block = extract_managed_blocks(f"{BEGIN}\n{END}").blocks[0]
        assert block.content == ""

    def test_nested_begin_closes_previous(self, caplog: pytest.LogCaptureFixture) -> None:
        source = "\n".join([f"{BEGIN} id=outer", "a", f"{BEGIN} id=inner", "b", END])
        with caplog.at_level(logging.WARNING):
            extraction = extract_managed_blocks(source)
        outer, inner = extraction.blocks
        assert (outer.id, outer.start_line, outer.end_line, outer.content) == ("outer", 0, 1, "a")
        assert (inner.id, inner.content) == ("inner", "b")
        (warning,) = extraction.warnings
        assert warning.type == "nested"
        assert warning.line == 3
        assert warning.message == (
            "Nested managed block detected at line 3. Previous block starting at line 1 will be closed."
        )
        assert "Nested managed block" in caplog.text

    def test_unclosed_block_dropped(self) -> None:
        extraction = extract_managed_blocks("\n".join(["keep", f"{BEGIN} id=x", "lost"]))
        assert extraction.blocks == []
        assert extraction.preserved_lines == ["keep"]
        (warning,) = extraction.warnings
        assert warning.type == "unclosed"
        assert warning.message == "Unclosed managed block starting at line 2 - block will be ignored"

    def test_stray_end_is_text(self) -> None:
        extraction = extract_managed_blocks(f"a\n{END}\nb")
        assert extraction.blocks == []
        assert extraction.preserved_lines == ["a", END, "b"]
        assert extraction.warnings == []


class TestInject:
    def test_into_empty_file(self) -> None:
        result = inject_managed_blocks("", [NewBlock("one", "a"), NewBlock("two")])
        assert result == f"{BEGIN} id=a\none\n{END}\n\n{BEGIN}\ntwo\n{END}"

    def test_into_file_without_blocks(self) -> None:
        result = inject_managed_blocks("\n\nuser line\n\n", [NewBlock("gen", "a")])
        assert result == f"user line\n\n{BEGIN} id=a\ngen\n{END}"

    def test_no_blocks_and_nothing_new(self) -> None:
        assert inject_managed_blocks("\nuser\n", []) == "user"

    def test_replace_by_id_keeps_user_code(self) -> None:
        existing = "\n".join(["header", f"{BEGIN} id=a", "old", END, "custom", f"{BEGIN} id=b", "keep", END])
        result = inject_managed_blocks(existing, [NewBlock("new", "a")])
        assert result == "\n".join(
            ["header", f"{BEGIN} id=a", "new", END, "custom", f"{BEGIN} id=b", "keep", END]
        )

    def test_duplicate_existing_ids_all_replaced(self) -> None:
        existing = "\n".join([f"{BEGIN} id=a", "x", END, f"{BEGIN} id=a", "y", END])
        result = inject_managed_blocks(existing, [NewBlock("z", "a")])
        assert result.count("z") == 2
        assert "x" not in result.split("\n")

    def test_positional_matching(self) -> None:
        existing = "\n".join([BEGIN, "first", END, "mid", BEGIN, "second", END])
        result = inject_managed_blocks(existing, [NewBlock("one"), NewBlock("two")])
        assert result == "\n".join([BEGIN, "one", END, "mid", BEGIN, "two", END])

    def test_identical_id_less_blocks_all_placed(self) -> None:
        result = inject_managed_blocks("user\n" + wrap_in_block("old"), [NewBlock("same"), NewBlock("same")])
        assert result.count("same") == 2

    def test_unmatched_new_blocks_appended(self) -> None:
        existing = "\n".join([f"{BEGIN} id=a", "x", END])
        result = inject_managed_blocks(existing, [NewBlock("y", "a"), NewBlock("z", "b"), NewBlock("w")])
        assert result == "\n".join(
            [f"{BEGIN} id=a", "y", END, "", f"{BEGIN} id=b", "z", END, "", BEGIN, "w", END]
        )

    def test_untouched_block_keeps_original_markers(self) -> None:
        existing = "\n".join([f"  # {BLOCK_START_TOKEN} id=py", "x", f"  # {BLOCK_END_TOKEN}"])
        assert inject_managed_blocks(existing, []) == existing

    def test_nested_cut_block_is_repaired(self) -> None:
        existing = "\n".join([f"{BEGIN} id=outer", "a", f"{BEGIN} id=inner", "b", END])
        result = inject_managed_blocks(existing, [NewBlock("new", "inner")])
        assert result == "\n".join(
            [f"{BEGIN} id=outer", "a", END, f"{BEGIN} id=inner", "new", END]
        )
        assert extract_managed_blocks(result).warnings == []

    def test_unclosed_block_dropped(self) -> None:
        existing = "\n".join(["keep", f"{BEGIN} id=a", "x", END, f"{BEGIN} id=b", "lost"])
        result = inject_managed_blocks(existing, [NewBlock("y", "a")])
        assert result == "\n".join(["keep", f"{BEGIN} id=a", "y", END])

    def test_punctuated_id_not_duplicated(self) -> None:
        blocks = [NewBlock("test('x')", "login.smoke")]
        code = ""
        for _ in range(3):
            code = inject_managed_blocks(code, blocks)
        extraction = extract_managed_blocks(code)
        assert [b.id for b in extraction.blocks] == ["login.smoke"]

    def test_custom_comment(self) -> None:
        result = inject_managed_blocks("", [NewBlock("x = 1", "py")], comment="#")
        assert result.startswith(f"# {BLOCK_START_TOKEN} id=py")

    @given(new_blocks())
    @settings(max_examples=100)
    def test_extract_recovers_injected_blocks(self, blocks: list[NewBlock]) -> None:
        extraction = extract_managed_blocks(inject_managed_blocks("", blocks))
        assert extraction.warnings == []
        assert [(b.id, b.content) for b in extraction.blocks] == [(b.id, b.content) for b in blocks]

    @given(new_blocks())
    @settings(max_examples=100)
    def test_reinjection_is_idempotent(self, blocks: list[NewBlock]) -> None:
        first = inject_managed_blocks("", blocks)
        assert inject_managed_blocks(first, blocks) == first

    @given(
        st.lists(contents, max_size=4),
        st.lists(contents, max_size=4),
        contents,
        contents,
    )
    @settings(max_examples=100)
    def test_user_lines_survive(
        self, before: list[str], after: list[str], old: str, new: str
    ) -> None:
        before = [line.replace("\n", " ") for line in before]
        after = [line.replace("\n", " ") for line in after]
        existing = "\n".join([*before, wrap_in_block(old, "gen"), *after])
        merged = inject_managed_blocks(existing, [NewBlock(new, "gen")])
        extraction = extract_managed_blocks(merged)
        assert extraction.preserved_lines == [*before, *after]
        assert extraction.blocks[0].content == new
