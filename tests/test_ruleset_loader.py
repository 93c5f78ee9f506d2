"""
Test Suite for Ruleset Loader

Run with: pytest tests/test_ruleset_loader.py -v
"""

import unittest
import json
import tempfile
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from symptom_triage.contracts import (
    TERMINAL,
    AnswerType,
    Continue,
    Many,
    Single,
    Urgency,
)
from symptom_triage.core.ruleset_loader import (
    DEFAULT_FALLBACK,
    load_ruleset,
    parse_ruleset,
)
from symptom_triage.errors import RuleSetError


def minimal_ruleset():
    """Two-question asset used as a base for each test."""
    return {
        "version": "test",
        "questions": [
            {
                "id": "fever_check",
                "text": "Do you have a fever?",
                "type": "single",
                "options": ["yes", "no"],
                "next": {"yes": "symptoms"},
            },
            {
                "id": "symptoms",
                "text": "Which symptoms?",
                "type": "multiple",
                "options": [{"value": "cough", "label": "Cough"}, "rash"],
            },
        ],
        "rules": [
            {
                "id": "r_fever",
                "conditions": {"fever_check": "yes", "symptoms": ["cough", "rash"]},
                "result": {"urgency": "high", "title": "Seek care"},
            }
        ],
        "fallback": {"urgency": "low", "title": "Monitor"},
    }


# =============================================================================
# PART 1: Parsing valid assets
# =============================================================================

class TestParseValidRuleset(unittest.TestCase):
    """Well-formed assets become tagged contracts."""

    def setUp(self):
        self.ruleset = parse_ruleset(minimal_ruleset())

    def test_questions_loaded_in_order(self):
        """Questions are available by id and entry defaults to the first one."""
        self.assertEqual(len(self.ruleset.questions), 2)
        self.assertEqual(self.ruleset.entry_question_id, "fever_check")

    def test_answer_types(self):
        """'single' and 'multiple' map to AnswerType members."""
        self.assertIs(self.ruleset.questions.lookup("fever_check").answer_type, AnswerType.SINGLE)
        self.assertIs(self.ruleset.questions.lookup("symptoms").answer_type, AnswerType.MULTIPLE)

    def test_options_accept_strings_and_objects(self):
        """String options get label == value; object options keep their label."""
        options = self.ruleset.questions.lookup("symptoms").options
        self.assertEqual(options[0].value, "cough")
        self.assertEqual(options[0].label, "Cough")
        self.assertEqual(options[1].value, "rash")
        self.assertEqual(options[1].label, "rash")

    def test_successors_become_continue(self):
        """Successor targets are wrapped in Continue."""
        question = self.ruleset.questions.lookup("fever_check")
        self.assertEqual(question.successors, (("yes", Continue("symptoms")),))
        self.assertIsNone(question.default_next)

    def test_conditions_become_tagged_values(self):
        """String conditions are Single, list conditions are Many."""
        rule = self.ruleset.rules[0]
        conditions = dict(rule.conditions)
        self.assertEqual(conditions["fever_check"], Single("yes"))
        self.assertEqual(conditions["symptoms"], Many(frozenset({"cough", "rash"})))

    def test_result_and_fallback(self):
        """Urgency strings become Urgency members; missing text fields default to ''."""
        result = self.ruleset.rules[0].result
        self.assertIs(result.urgency, Urgency.HIGH)
        self.assertEqual(result.title, "Seek care")
        self.assertEqual(result.description, "")
        self.assertIs(self.ruleset.fallback.urgency, Urgency.LOW)
        self.assertEqual(self.ruleset.fallback.title, "Monitor")
        self.assertEqual(self.ruleset.version, "test")

    def test_final_marker_becomes_terminal(self):
        """The asset's "final" string never survives loading."""
        data = minimal_ruleset()
        data["questions"][0]["next"] = {"yes": "symptoms", "no": "final"}
        data["questions"][1]["default_next"] = None

        ruleset = parse_ruleset(data)

        self.assertEqual(dict(ruleset.questions.lookup("fever_check").successors)["no"], TERMINAL)
        self.assertEqual(ruleset.questions.lookup("symptoms").default_next, TERMINAL)

    def test_legacy_default_key_in_next(self):
        """'default' inside next is read as the default edge."""
        data = minimal_ruleset()
        data["questions"][0]["next"] = {"yes": "symptoms", "default": "symptoms"}

        question = parse_ruleset(data).questions.lookup("fever_check")

        self.assertEqual(question.default_next, Continue("symptoms"))
        self.assertNotIn("default", dict(question.successors))

    def test_explicit_default_next_wins(self):
        """With default_next present, a 'default' key in next is an ordinary answer edge."""
        data = minimal_ruleset()
        data["questions"][0]["next"] = {"default": "symptoms"}
        data["questions"][0]["default_next"] = "final"

        question = parse_ruleset(data).questions.lookup("fever_check")

        self.assertEqual(question.default_next, TERMINAL)
        self.assertEqual(dict(question.successors)["default"], Continue("symptoms"))

    def test_explicit_entry_question(self):
        """entry_question overrides the first-question default."""
        data = minimal_ruleset()
        data["entry_question"] = "symptoms"

        self.assertEqual(parse_ruleset(data).entry_question_id, "symptoms")

    def test_missing_fallback_uses_default(self):
        """No fallback in the asset -> built-in general health fallback."""
        data = minimal_ruleset()
        del data["fallback"]

        self.assertEqual(parse_ruleset(data).fallback, DEFAULT_FALLBACK)

    def test_missing_rules_is_empty(self):
        """An asset without rules is valid (everything falls back)."""
        data = minimal_ruleset()
        del data["rules"]

        self.assertEqual(parse_ruleset(data).rules, ())

    def test_answer_type_aliases(self):
        """single-choice / multi-choice spellings are accepted."""
        data = minimal_ruleset()
        data["questions"][0]["type"] = "single-choice"
        data["questions"][1]["type"] = "multi-choice"

        ruleset = parse_ruleset(data)

        self.assertIs(ruleset.questions.lookup("fever_check").answer_type, AnswerType.SINGLE)
        self.assertIs(ruleset.questions.lookup("symptoms").answer_type, AnswerType.MULTIPLE)


# =============================================================================
# PART 2: Validation failures
# =============================================================================

class TestRulesetValidation(unittest.TestCase):
    """Malformed assets fail fast with RuleSetError."""

    def assertInvalid(self, data, fragment):
        with self.assertRaises(RuleSetError) as ctx:
            parse_ruleset(data)
        self.assertIn(fragment, str(ctx.exception))

    def test_top_level_not_object(self):
        self.assertInvalid([], "top level must be an object")

    def test_missing_questions(self):
        data = minimal_ruleset()
        data["questions"] = []
        self.assertInvalid(data, "Missing or empty 'questions'")

    def test_question_without_id(self):
        data = minimal_ruleset()
        del data["questions"][1]["id"]
        self.assertInvalid(data, "Question at index 1 missing 'id'")

    def test_duplicate_question_id(self):
        data = minimal_ruleset()
        data["questions"][1]["id"] = "fever_check"
        self.assertInvalid(data, "Duplicate question id 'fever_check'")

    def test_unknown_answer_type(self):
        data = minimal_ruleset()
        data["questions"][0]["type"] = "slider"
        self.assertInvalid(data, "unknown type 'slider'")

    def test_missing_text(self):
        data = minimal_ruleset()
        del data["questions"][0]["text"]
        self.assertInvalid(data, "Question 'fever_check' missing 'text'")

    def test_successor_to_undefined_question(self):
        """Successor ids are cross-validated at load time."""
        data = minimal_ruleset()
        data["questions"][0]["next"] = {"yes": "nowhere"}
        self.assertInvalid(data, "routes to undefined question 'nowhere'")

    def test_default_to_undefined_question(self):
        data = minimal_ruleset()
        data["questions"][1]["default_next"] = "nowhere"
        self.assertInvalid(data, "routes to undefined question 'nowhere'")

    def test_undefined_entry_question(self):
        data = minimal_ruleset()
        data["entry_question"] = "nowhere"
        self.assertInvalid(data, "Entry question 'nowhere' is not defined")

    def test_rule_references_undefined_question(self):
        data = minimal_ruleset()
        data["rules"][0]["conditions"]["pain_level"] = "high"
        self.assertInvalid(data, "references undefined question 'pain_level'")

    def test_rule_condition_bad_value(self):
        data = minimal_ruleset()
        data["rules"][0]["conditions"]["symptoms"] = []
        self.assertInvalid(data, "must be a string or a non-empty list of strings")

    def test_rule_unknown_urgency(self):
        data = minimal_ruleset()
        data["rules"][0]["result"]["urgency"] = "emergency"
        self.assertInvalid(data, "unknown urgency 'emergency'")

    def test_rule_missing_title(self):
        data = minimal_ruleset()
        del data["rules"][0]["result"]["title"]
        self.assertInvalid(data, "rule 'r_fever' missing 'title'")

    def test_duplicate_rule_id(self):
        data = minimal_ruleset()
        data["rules"].append(dict(data["rules"][0]))
        self.assertInvalid(data, "Duplicate rule id 'r_fever'")

    def test_bad_fallback(self):
        data = minimal_ruleset()
        data["fallback"] = {"urgency": "low"}
        self.assertInvalid(data, "fallback missing 'title'")

    def test_all_errors_reported_together(self):
        """Every problem is listed, not just the first."""
        data = minimal_ruleset()
        data["questions"][0]["next"] = {"yes": "nowhere"}
        data["rules"][0]["result"]["urgency"] = "emergency"

        with self.assertRaises(RuleSetError) as ctx:
            parse_ruleset(data)

        message = str(ctx.exception)
        self.assertIn("nowhere", message)
        self.assertIn("emergency", message)


# =============================================================================
# PART 3: Loading from disk
# =============================================================================

class TestLoadRuleset(unittest.TestCase):
    """load_ruleset() reads JSON files."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.temp_dir.cleanup()

    def _write(self, name, content):
        path = os.path.join(self.temp_dir.name, name)
        with open(path, 'w') as f:
            f.write(content)
        return path

    def test_load_valid_file(self):
        path = self._write("ruleset.json", json.dumps(minimal_ruleset()))

        ruleset = load_ruleset(path)

        self.assertEqual(ruleset.entry_question_id, "fever_check")
        self.assertEqual(len(ruleset.rules), 1)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_ruleset(os.path.join(self.temp_dir.name, "missing.json"))

    def test_invalid_json(self):
        path = self._write("broken.json", "{not json")

        with self.assertRaises(RuleSetError) as ctx:
            load_ruleset(path)

        self.assertIn("not valid JSON", str(ctx.exception))


if __name__ == '__main__':
    unittest.main()
