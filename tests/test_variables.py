import pytest

from api.core.errors import ErrorKind, ServiceError
from api.services.variables import diff_variables, extract_variables, format_content


class TestExtractVariables:
    def test_names_in_order_of_appearance(self):
        assert extract_variables("hello {{name}} you have {{count}} pts") == ["name", "count"]

    def test_duplicates_are_kept(self):
        assert extract_variables("{{a}} {{b}} {{a}}") == ["a", "b", "a"]

    def test_plain_text_has_no_variables(self):
        assert extract_variables("just text { and } single braces") == []

    @pytest.mark.parametrize(
        "name",
        ["a", "_", "_private", "abcdefghijklmnop", "x1_y2"],
    )
    def test_valid_names(self, name):
        assert extract_variables(f"{{{{{name}}}}}") == [name]

    @pytest.mark.parametrize(
        "content",
        [
            "{{bad-name}}",
            "{{}}",
            "{{1abc}}",
            "{{ spaced }}",
            "{{abcdefghijklmnopq}}",  # 17 characters
        ],
    )
    def test_invalid_name_fails(self, content):
        with pytest.raises(ServiceError) as exc_info:
            extract_variables(content)
        assert exc_info.value.kind is ErrorKind.INVALID_TEMPLATE
        assert "Invalid variable name" in exc_info.value.message

    @pytest.mark.parametrize("content", ["{{ok}} extra {{", "{{a {{b}}", "start {{"])
    def test_unmatched_opening_fails(self, content):
        with pytest.raises(ServiceError) as exc_info:
            extract_variables(content)
        assert exc_info.value.kind is ErrorKind.INVALID_TEMPLATE
        assert exc_info.value.message == "Unmatched '{{'"

    @pytest.mark.parametrize("content", ["{{a}} b}}", "a}} b}}", "end }}"])
    def test_unmatched_closing_fails(self, content):
        with pytest.raises(ServiceError) as exc_info:
            extract_variables(content)
        assert exc_info.value.kind is ErrorKind.INVALID_TEMPLATE
        assert exc_info.value.message == "Unmatched '}}'"

    def test_is_deterministic(self):
        content = "{{x}} and {{y}} and {{x}}"
        assert extract_variables(content) == extract_variables(content)


class TestFormatContent:
    def test_substitutes_values(self):
        assert format_content("score: {{s}}", {"s": 42}) == "score: 42"

    def test_negative_values(self):
        assert format_content("{{a}}/{{b}}", {"a": -3, "b": 7}) == "-3/7"

    def test_missing_variable_fails(self):
        with pytest.raises(ServiceError) as exc_info:
            format_content("score: {{s}}", {})
        assert exc_info.value.kind is ErrorKind.MISSING_VARIABLE

    def test_text_outside_placeholders_is_untouched(self):
        assert format_content("no vars {here}", {}) == "no vars {here}"

    def test_repeated_placeholder(self):
        assert format_content("{{n}} + {{n}}", {"n": 2}) == "2 + 2"


class TestDiffVariables:
    def test_shared_names_are_left_alone(self):
        diff = diff_variables(["b", "c"], ["a", "b"])
        assert diff.to_create == ["c"]
        assert diff.to_delete == ["a"]

    def test_duplicates_collapse(self):
        diff = diff_variables(["c", "c", "d"], [])
        assert diff.to_create == ["c", "d"]
        assert diff.to_delete == []

    def test_identical_sets_are_empty(self):
        assert diff_variables(["a", "b"], ["b", "a"]).is_empty
