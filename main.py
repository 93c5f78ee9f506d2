"""
Console Test Harness for DialogueManager

Simple console loop to walk a triage dialogue without the Flask layer.
"""

import logging
import sys

from symptom_triage.config import TriageConfig
from symptom_triage.contracts import AnswerType
from symptom_triage.core.dialogue_manager import DialogueManager
from symptom_triage.core.ruleset_loader import load_ruleset
from symptom_triage.errors import TriageError
from symptom_triage.persistence import SuggestionRecordStore

logger = logging.getLogger(__name__)

EXIT_COMMANDS = {"quit", "exit", "stop"}


def print_separator(char="=", length=60):
    """Print a separator line"""
    print(char * length)


def print_question(question):
    """Print question text and numbered options"""
    print(f"\n{question.text}")
    for index, option in enumerate(question.options, start=1):
        print(f"  {index}. {option.label}")
    if question.answer_type is AnswerType.MULTIPLE:
        print("(select one or more, comma separated)")


def read_answer(question, user_input):
    """
    Turn console input into a raw answer.

    Accepts option numbers or option values; multi-choice answers are
    comma separated.
    """
    values = question.option_values
    picks = []
    for token in user_input.split(","):
        token = token.strip()
        if token.isdigit() and 1 <= int(token) <= len(values):
            picks.append(values[int(token) - 1])
        elif token:
            picks.append(token)

    if question.answer_type is AnswerType.MULTIPLE:
        return picks
    return picks[0] if picks else ""


def print_suggestions(suggestions):
    """Print ranked suggestions"""
    for rank, suggestion in enumerate(suggestions, start=1):
        print(f"\n{rank}. [{suggestion.urgency.value.upper()}] {suggestion.title}")
        if suggestion.description:
            print(f"   {suggestion.description}")
        if suggestion.reasoning:
            print(f"   Why: {suggestion.reasoning}")
        if suggestion.action:
            print(f"   Next step: {suggestion.action}")


def main():
    """Run console dialogue"""
    config = TriageConfig.from_env()

    # Configure logging
    logging.basicConfig(
        level=config.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    print_separator()
    print("SYMPTOM TRIAGE - CONSOLE")
    print_separator()

    try:
        ruleset = load_ruleset(config.ruleset_path)
    except (FileNotFoundError, TriageError) as e:
        print(f"\nFailed to load ruleset: {e}")
        return 1

    manager = DialogueManager(ruleset, max_suggestions=config.max_suggestions)
    records = SuggestionRecordStore(config.records_dir)

    started = manager.start_session()
    session_id = started.session_id
    question = started.first_question

    print("Type 'quit', 'exit', or 'stop' to end early")

    while True:
        print_question(question)

        try:
            user_input = input("> ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nTriage interrupted by user")
            manager.end_session(session_id)
            return 0

        if user_input.lower() in EXIT_COMMANDS:
            print("\nTriage ended by user")
            manager.end_session(session_id)
            return 0

        if not user_input:
            print("Please enter a response.")
            continue

        try:
            result = manager.submit_answer(session_id, question.id, read_answer(question, user_input))
        except TriageError as e:
            print(f"\nERROR: {e}")
            continue

        if result.is_complete:
            break

        question = result.next_question

    print_separator()
    print("TRIAGE COMPLETE")
    print_separator()
    print_suggestions(result.suggestions)

    path = records.save_record(manager.store.get(session_id))
    print(f"\nRecord saved: {path}")

    manager.end_session(session_id)
    return 0


if __name__ == '__main__':
    sys.exit(main())
