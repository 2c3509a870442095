"""Tests for tracking/movement.py module."""

from __future__ import annotations

from coderef.tracking.movement import (
    EXACT_REASON,
    NOT_FOUND_REASON,
    PARTIAL_REASON,
    detect_movement,
)

OLD_FUNCTION = "function add(a, b) {\n  return a + b;\n}"


class TestDetectMovement:
    """Tests for detect_movement."""

    def test_verbatim_relocation(self) -> None:
        """Old lines found verbatim give full confidence and their new span."""
        new_text = "// header\n\nimport x from 'x';\n" + OLD_FUNCTION + "\n"

        result = detect_movement(OLD_FUNCTION, new_text)

        assert result.found
        assert result.exact
        assert result.confidence > 0.8
        assert result.reason == EXACT_REASON
        assert (result.start_line, result.end_line) == (4, 6)

    def test_unrelated_replacement(self) -> None:
        """Nothing similar yields zero confidence."""
        result = detect_movement("alpha beta gamma", "zzz\nqqq\n")

        assert not result.found
        assert result.confidence == 0.0
        assert result.reason == NOT_FOUND_REASON
        assert result.start_line is None

    def test_partial_overlap(self) -> None:
        """Edited code is found with confidence strictly between the extremes."""
        new_text = "const x = 1;\nfunction add(a, b) {\n  return a + b + 1;\n}\n"

        result = detect_movement(OLD_FUNCTION, new_text)

        assert result.found
        assert 0.0 < result.confidence < 1.0
        assert not result.exact
        assert result.reason == PARTIAL_REASON
        assert result.start_line == 2

    def test_whitespace_only_change_is_not_exact(self) -> None:
        """Re-indentation is a partial match capped below 1.0."""
        result = detect_movement("  x = 1", "y = 2\nx = 1\n")

        assert result.found
        assert result.confidence == 0.99
        assert result.start_line == 2

    def test_near_breaks_ties(self) -> None:
        """The verbatim occurrence closest to the old position wins."""
        new_text = "dup\nother\nother\nother\ndup\n"

        assert detect_movement("dup", new_text, near=4).start_line == 5
        assert detect_movement("dup", new_text, near=1).start_line == 1
        assert detect_movement("dup", new_text).start_line == 1

    def test_threshold_controls_partial_match(self) -> None:
        """A stricter threshold rejects weaker overlaps."""
        new_text = "function add(x, y) {\n  return x * y - 3;\n}\n"

        loose = detect_movement(OLD_FUNCTION, new_text, threshold=0.5)
        strict = detect_movement(OLD_FUNCTION, new_text, threshold=0.95)

        assert loose.found
        assert not strict.found

    def test_blank_old_content(self) -> None:
        """Whitespace-only content is never found."""
        result = detect_movement("   \n", "a\n   \n")

        assert not result.found
        assert result.reason == NOT_FOUND_REASON
