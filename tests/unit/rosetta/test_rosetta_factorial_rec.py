"""Rosetta test: recursive factorial across python, java and cpp."""

import pytest

from tests.unit.rosetta.conftest import (
    trace_for_language,
    simulation_descriptions,
    assert_clean_trace,
    assert_cross_language_consistency,
    extract_answer,
    ROSETTA_LANGUAGES,
)

# ---------------------------------------------------------------------------
# Programs: recursive factorial in every supported language
# Each computes factorial(5) and stores the result in ``answer``.
# ---------------------------------------------------------------------------

PROGRAMS: dict[str, str] = {
    "python": """\
def factorial(n):
    if n <= 1:
        return 1
    return n * factorial(n - 1)

answer = factorial(5)
""",
    "java": """\
class M {
    static int factorial(int n) {
        if (n <= 1) {
            return 1;
        }
        return n * factorial(n - 1);
    }

    public static void main(String[] args) {
        int answer = factorial(5);
    }
}
""",
    "cpp": """\
int factorial(int n) {
    if (n <= 1) {
        return 1;
    }
    return n * factorial(n - 1);
}

int main() {
    int answer = factorial(5);
    return 0;
}
""",
}

MIN_STEPS = 11
EXPECTED_ANSWER = 120  # 5! via recursion


# ---------------------------------------------------------------------------
# Per-language trace tests (parametrized)
# ---------------------------------------------------------------------------


class TestFactorialRecTrace:
    @pytest.fixture(params=sorted(PROGRAMS.keys()), ids=lambda lang: lang)
    def language_steps(self, request):
        lang = request.param
        return lang, trace_for_language(lang, PROGRAMS[lang])

    def test_clean_trace(self, language_steps):
        lang, steps = language_steps
        assert_clean_trace(steps, min_steps=MIN_STEPS, language=lang)

    def test_correct_result(self, language_steps):
        lang, steps = language_steps
        answer = extract_answer(steps, lang)
        assert (
            answer == EXPECTED_ANSWER
        ), f"[{lang}] expected answer={EXPECTED_ANSWER}, got {answer}"

    def test_single_base_case(self, language_steps):
        lang, steps = language_steps
        base = [
            d for d in simulation_descriptions(steps, "factorial") if "base case" in d
        ]
        assert base == ["factorial(1): base case, return 1"], f"[{lang}] got {base}"


# ---------------------------------------------------------------------------
# Cross-language consistency tests
# ---------------------------------------------------------------------------


class TestFactorialRecCrossLanguage:
    @pytest.fixture(scope="class")
    def all_results(self):
        return {lang: trace_for_language(lang, PROGRAMS[lang]) for lang in PROGRAMS}

    def test_all_languages_covered(self):
        assert set(PROGRAMS.keys()) == set(ROSETTA_LANGUAGES)

    def test_cross_language_consistency(self, all_results):
        assert_cross_language_consistency(all_results, function_name="factorial")
