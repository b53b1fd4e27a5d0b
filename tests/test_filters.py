import pytest

from itinerary.errors import FilterSyntaxError
from itinerary.filters import FilterChain, compile_filter


def test_compiled_filter_compares_fields():
    predicate = compile_filter("title == 'Flight' and not hidden")

    assert predicate({"title": "Flight", "hidden": False}) is True
    assert predicate({"title": "Flight", "hidden": True}) is False
    assert predicate({"title": "Hotel", "hidden": False}) is False


def test_membership_in_tags():
    predicate = compile_filter("'work' in tags")

    assert predicate({"tags": ["work", "travel"]}) is True
    assert predicate({"tags": ["travel"]}) is False


def test_arithmetic_chained_comparison_and_functions():
    assert compile_filter("nights * 2 >= 10")({"nights": 5}) is True
    assert compile_filter("1 < nights <= 3")({"nights": 3}) is True
    assert compile_filter("1 < nights <= 3")({"nights": 4}) is False
    assert compile_filter("lower(title) == 'flight'")({"title": "FLIGHT"}) is True
    assert compile_filter("len(tags) == 2")({"tags": ["a", "b"]}) is True


def test_iso_timestamps_compare_as_strings():
    predicate = compile_filter("start >= '2024-03-01'")

    assert predicate({"start": "2024-03-02T10:00:00+01:00"}) is True
    assert predicate({"start": "2024-02-28"}) is False


def test_unknown_field_is_none_and_runtime_errors_are_false():
    assert compile_filter("missing == null")({}) is True
    assert compile_filter("'work' in tags")({}) is False
    assert compile_filter("start > 5")({"start": "2024-01-01"}) is False
    assert compile_filter("1 / zero")({"zero": 0}) is False


def test_evaluation_is_pure():
    predicate = compile_filter("x + 1 == 2")
    item = {"x": 1}

    assert predicate(item) is True
    assert predicate(item) is True
    assert item == {"x": 1}


@pytest.mark.parametrize(
    "expression",
    [
        "",
        "   ",
        "title ==",
        "__import__('os')",
        "title.upper()",
        "lambda: 1",
        "event.title",
        "tags[0]",
        "x := 1",
    ],
)
def test_invalid_expressions_fail_to_compile(expression):
    with pytest.raises(FilterSyntaxError) as excinfo:
        compile_filter(expression)

    assert excinfo.value.expression == expression or not expression.strip()


def test_syntax_error_message_names_expression():
    with pytest.raises(FilterSyntaxError) as excinfo:
        compile_filter("title == 'a' and")

    assert "title == 'a' and" in str(excinfo.value)


def test_chain_is_logical_and_with_short_circuit():
    assert FilterChain(["true", "true"]).first_rejection({}) is None
    assert FilterChain(["true", "false"]).first_rejection({}) == 1
    assert FilterChain(["false", "true"]).first_rejection({}) == 0
    assert FilterChain(["false", "false"]).first_rejection({}) == 0


def test_chain_accepts_single_expression_or_nothing():
    assert len(FilterChain("x == 1")) == 1
    assert len(FilterChain()) == 0
    assert FilterChain().first_rejection({"x": 2}) is None


def test_chain_logs_compiled_filters():
    messages = []

    FilterChain(["x > 1", "y"], log=messages.append)

    assert messages == ["Filter #0 'x > 1' compiled", "Filter #1 'y' compiled"]


def test_chain_with_bad_filter_raises():
    with pytest.raises(FilterSyntaxError):
        FilterChain(["true", "(("])


@pytest.mark.parametrize(
    "expression",
    ["9 ** 9 ** 9", "2 ** 100000", "'a' * 10**10", "10**10 * 'a'", "tags * 10**9"],
)
def test_oversized_arithmetic_is_false(expression):
    assert compile_filter(expression)({"tags": ("work",)}) is False


def test_small_powers_and_repeats_still_evaluate():
    assert compile_filter("2 ** 10 == 1024")({}) is True
    assert compile_filter("'ab' * 3 == 'ababab'")({}) is True
