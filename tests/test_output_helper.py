"""Tests for output_helper.py - Output control utilities."""

from stepcalc.output_helper import (
    OutputConfig,
    OutputHelper,
    cap_lines,
    clip,
    number_steps,
    one_line,
)


class TestOutputConfig:
    """Tests for OutputConfig dataclass."""

    def test_defaults(self):
        """Test default values."""
        config = OutputConfig()
        assert config.compact_mode is False
        assert config.max_lines == 50
        assert config.max_steps_shown == 20
        assert config.truncate_long_values is True
        assert config.value_max_length == 80

    def test_from_partial_dict(self):
        """Test missing keys keep their defaults."""
        config = OutputConfig.from_dict({"compact_mode": True, "max_steps_shown": 3})
        assert config.compact_mode is True
        assert config.max_steps_shown == 3
        assert config.max_lines == 50

    def test_round_trip(self):
        """Test to_dict/from_dict."""
        config = OutputConfig(max_lines=7, truncate_long_values=False)
        assert OutputConfig.from_dict(config.to_dict()) == config


class TestClip:
    """Tests for clip function."""

    def test_short_text_untouched(self):
        """Test text within the limit is unchanged."""
        assert clip("short", 80) == "short"

    def test_clipped(self):
        """Test long text ends in an ellipsis at the limit."""
        result = clip("a" * 100, 20)
        assert len(result) == 20
        assert result.endswith("...")

    def test_no_limit(self):
        """Test limit 0 disables clipping."""
        assert clip("a" * 100, 0) == "a" * 100


class TestCapLines:
    """Tests for cap_lines function."""

    def test_capped(self):
        """Test extra lines are summarized."""
        lines = [f"line{i}" for i in range(100)]
        result = cap_lines(lines, 5)
        assert len(result) == 6
        assert result[-1] == "... (95 more lines)"

    def test_unlimited(self):
        """Test max_lines=0 keeps every line."""
        lines = [f"line{i}" for i in range(100)]
        assert cap_lines(lines, 0) == lines


class TestNumberSteps:
    """Tests for number_steps function."""

    def test_numbered(self):
        """Test steps are numbered from 1."""
        assert number_steps(["Input: 1+1", "Result: 2"]) == ["1. Input: 1+1", "2. Result: 2"]

    def test_capped(self):
        """Test the number of shown steps is capped."""
        result = number_steps([f"step {i}" for i in range(7)], 2)
        assert result == ["1. step 0", "2. step 1", "... and 5 more steps"]

    def test_empty(self):
        """Test no steps gives no lines."""
        assert number_steps([], 3) == []


class TestOneLine:
    """Tests for one_line function."""

    def test_collapses_whitespace(self):
        """Test multi-line values become one line."""
        assert one_line('{\n  "mean": 3\n}', OutputConfig()) == '{ "mean": 3 }'

    def test_truncates_long_values(self):
        """Test long values are clipped."""
        assert one_line("x" * 200, OutputConfig(value_max_length=10)) == "xxxxxxx..."

    def test_no_truncation_when_disabled(self):
        """Test clipping can be turned off."""
        assert len(one_line("x" * 200, OutputConfig(truncate_long_values=False))) == 200


class TestOutputHelper:
    """Tests for OutputHelper class."""

    def test_result_lines(self):
        """Test results are split and capped."""
        helper = OutputHelper(OutputConfig(max_lines=1))
        assert helper.result_lines("[\n  1\n]") == ["[", "... (2 more lines)"]
        assert helper.result_lines("") == [""]

    def test_compact_hides_steps(self):
        """Test compact mode shows no steps."""
        helper = OutputHelper(OutputConfig(compact_mode=True))
        assert helper.steps(["a", "b"]) == []

    def test_steps(self):
        """Test steps follow max_steps_shown."""
        helper = OutputHelper(OutputConfig(max_steps_shown=1))
        assert helper.steps(["a", "b"]) == ["1. a", "... and 1 more steps"]

    def test_default_config(self):
        """Test the helper works without a config."""
        assert OutputHelper().cell("a\nb") == "a b"
