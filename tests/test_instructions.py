"""Tests for managed instruction sections."""

from skillpack.instructions import (
    extract_instructions,
    inject_instructions,
    instruction_exists,
    remove_from_instruction_file,
    remove_instruction,
    upsert_instruction_file,
)

USER_CONTENT = "# My Project\n\nUse tabs.\n"


class TestInjectInstructions:
    """Tests for inject_instructions()."""

    def test_append_to_user_content(self):
        result = inject_instructions(USER_CONTENT, {"lint": "Run the linter."})

        assert result.startswith(USER_CONTENT.rstrip("\n") + "\n\n## Shared Instructions\n")
        assert "### lint\n\nRun the linter." in result
        assert result.endswith("\n---\n")

    def test_entries_sorted(self):
        result = inject_instructions("", {"zeta": "z", "alpha": "a"})
        assert result.index("### alpha") < result.index("### zeta")

    def test_replace_keeps_surroundings(self):
        content = inject_instructions(USER_CONTENT, {"lint": "old"}) + "\n## Footer\n"
        result = inject_instructions(content, {"lint": "new"})

        assert "new" in result
        assert "old" not in result
        assert result.startswith(USER_CONTENT.rstrip("\n"))
        assert result.endswith("## Footer\n")

    def test_round_trip(self):
        entries = {"lint": "Run the linter.", "tests": "Run pytest.\n\nAlways."}
        assert extract_instructions(inject_instructions("", entries)) == entries

    def test_custom_heading(self):
        result = inject_instructions("", {"a": "x"}, heading="# Skills", end_marker="<!-- end -->")
        assert "## a" in result
        assert extract_instructions(result, "# Skills", "<!-- end -->") == {"a": "x"}


class TestRemoveInstruction:
    """Tests for remove_instruction()."""

    def test_remove_one_of_two(self):
        content = inject_instructions(USER_CONTENT, {"a": "x", "b": "y"})
        result = remove_instruction(content, "a")

        assert not instruction_exists(result, "a")
        assert instruction_exists(result, "b")

    def test_remove_last_removes_section(self):
        content = inject_instructions(USER_CONTENT, {"a": "x"})
        result = remove_instruction(content, "a")

        assert result == USER_CONTENT
        assert "Shared Instructions" not in result

    def test_remove_missing_is_noop(self):
        assert remove_instruction(USER_CONTENT, "a") == USER_CONTENT


class TestInstructionFile:
    """Tests for the file helpers."""

    def test_upsert_creates_file(self, tmp_path):
        path = tmp_path / "GEMINI.md"
        upsert_instruction_file(path, "lint", "Run the linter.")
        assert instruction_exists(path.read_text(), "lint")

    def test_remove_deletes_empty_file(self, tmp_path):
        path = tmp_path / "GEMINI.md"
        upsert_instruction_file(path, "lint", "Run the linter.")

        assert remove_from_instruction_file(path, "lint") is True
        assert not path.exists()

    def test_remove_keeps_user_content(self, tmp_path):
        path = tmp_path / "GEMINI.md"
        path.write_text(USER_CONTENT)
        upsert_instruction_file(path, "lint", "Run the linter.")

        remove_from_instruction_file(path, "lint")
        assert path.read_text() == USER_CONTENT

    def test_remove_absent(self, tmp_path):
        assert remove_from_instruction_file(tmp_path / "GEMINI.md", "lint") is False
