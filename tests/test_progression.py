"""Unit tests for the progression state machine and routing tokens."""

import pytest

from quizassist.core.errors import QuizAssistError
from quizassist.db.models import (
    AssistanceRequirementEnum,
    FinalStatusEnum,
    NextActionEnum,
)
from quizassist.services import progression
from quizassist.services.progression import Event, InvalidTransition, QuizState

from helpers import ALL_LEVELS, make_progress


class TestDeriveState:
    def test_no_row(self):
        assert progression.derive_state(None, ALL_LEVELS) is QuizState.NOT_STARTED

    def test_fresh_row(self):
        assert progression.derive_state(make_progress(), ALL_LEVELS) is QuizState.NOT_STARTED

    def test_passed(self):
        progress = make_progress(current_attempt=1, final_status=FinalStatusEnum.PASSED)
        assert progression.derive_state(progress, ALL_LEVELS) is QuizState.PASSED

    def test_failed_for_good(self):
        progress = make_progress(current_attempt=4, failed_attempts=4)
        assert progression.derive_state(progress, ALL_LEVELS) is QuizState.FAILED

    @pytest.mark.parametrize("failed", [1, 2, 3])
    def test_routes_to_level_matching_failures(self, failed):
        completed = {f"level{n}_completed": True for n in range(1, failed)}
        progress = make_progress(current_attempt=failed, failed_attempts=failed, **completed)
        assert progression.derive_state(progress, ALL_LEVELS) is QuizState.assistance(failed)

    def test_completed_level_means_retake(self):
        progress = make_progress(
            current_attempt=1, failed_attempts=1, level1_completed=True, must_retake_main_quiz=True
        )
        assert progression.derive_state(progress, ALL_LEVELS) is QuizState.MUST_RETAKE

    def test_skipped_level_means_try_again(self):
        progress = make_progress(current_attempt=1, failed_attempts=1)
        assert progression.derive_state(progress, frozenset()) is QuizState.RETAKE_ALLOWED

    def test_level3_grant(self):
        progress = make_progress(
            current_attempt=1,
            failed_attempts=1,
            level1_completed=True,
            level3_access_granted=True,
        )
        assert progression.derive_state(progress, ALL_LEVELS) is QuizState.LEVEL3_GRANTED

    def test_override_assigns_state(self):
        progress = make_progress(
            override_system_flow=True,
            manually_assigned_level=AssistanceRequirementEnum.ASSISTANCE_LEVEL3,
        )
        assert progression.derive_state(progress, ALL_LEVELS) is QuizState.ASSISTANCE_LEVEL3

    def test_override_none_reopens_quiz(self):
        progress = make_progress(
            current_attempt=2,
            failed_attempts=2,
            override_system_flow=True,
            manually_assigned_level=AssistanceRequirementEnum.NONE,
        )
        assert progression.derive_state(progress, ALL_LEVELS) is QuizState.RETAKE_ALLOWED


class TestTokens:
    def test_every_state_has_a_token(self):
        assert set(progression.STATE_TOKENS) == set(QuizState)

    @pytest.mark.parametrize(
        "state, token",
        [
            (QuizState.NOT_STARTED, NextActionEnum.TAKE_MAIN_QUIZ_NOW),
            (QuizState.ASSISTANCE_LEVEL1, NextActionEnum.COMPLETE_ASSISTANCE_LEVEL1),
            (QuizState.ASSISTANCE_LEVEL2, NextActionEnum.COMPLETE_ASSISTANCE_LEVEL2),
            (QuizState.ASSISTANCE_LEVEL3, NextActionEnum.COMPLETE_ASSISTANCE_LEVEL3),
            (QuizState.LEVEL3_GRANTED, NextActionEnum.VIEW_ASSISTANCE_LEVEL3),
            (QuizState.MUST_RETAKE, NextActionEnum.TRY_MAIN_QUIZ_AGAIN),
            (QuizState.FAILED, NextActionEnum.QUIZ_FAILED_MAX_ATTEMPTS),
            (QuizState.PASSED, NextActionEnum.QUIZ_PASSED),
        ],
    )
    def test_token(self, state, token):
        assert progression.STATE_TOKENS[state] is token

    def test_next_action(self):
        progress = make_progress(current_attempt=1, failed_attempts=1)
        assert (
            progression.next_action(progress, ALL_LEVELS)
            is NextActionEnum.COMPLETE_ASSISTANCE_LEVEL1
        )

    def test_required_assistance(self):
        assert (
            progression.required_assistance(QuizState.ASSISTANCE_LEVEL2)
            is AssistanceRequirementEnum.ASSISTANCE_LEVEL2
        )
        assert progression.required_assistance(QuizState.MUST_RETAKE) is AssistanceRequirementEnum.NONE

    def test_terminal_states(self):
        assert QuizState.PASSED.is_terminal
        assert QuizState.FAILED.is_terminal
        assert not QuizState.MUST_RETAKE.is_terminal


class TestTransitions:
    def test_submit_from_open_state(self):
        progression.check_transition(
            Event.MAIN_QUIZ_SUBMITTED, QuizState.NOT_STARTED, QuizState.ASSISTANCE_LEVEL1
        )
        progression.check_transition(
            Event.MAIN_QUIZ_SUBMITTED, QuizState.MUST_RETAKE, QuizState.PASSED
        )

    def test_submit_while_assistance_pending_is_rejected(self):
        with pytest.raises(InvalidTransition):
            progression.check_transition(
                Event.MAIN_QUIZ_SUBMITTED, QuizState.ASSISTANCE_LEVEL1, QuizState.ASSISTANCE_LEVEL2
            )

    def test_nothing_leaves_a_terminal_state(self):
        with pytest.raises(InvalidTransition):
            progression.check_transition(
                Event.MAIN_QUIZ_SUBMITTED, QuizState.PASSED, QuizState.RETAKE_ALLOWED
            )
        with pytest.raises(InvalidTransition):
            progression.check_transition(
                Event.ASSISTANCE_COMPLETED, QuizState.FAILED, QuizState.MUST_RETAKE
            )

    def test_completion_leads_back_to_quiz(self):
        progression.check_transition(
            Event.ASSISTANCE_COMPLETED, QuizState.ASSISTANCE_LEVEL3, QuizState.MUST_RETAKE
        )

    def test_completion_cannot_pass_quiz(self):
        with pytest.raises(InvalidTransition):
            progression.check_transition(
                Event.ASSISTANCE_COMPLETED, QuizState.ASSISTANCE_LEVEL1, QuizState.PASSED
            )

    def test_teacher_grading_only_passes(self):
        progression.check_transition(Event.TEACHER_GRADED, QuizState.FAILED, QuizState.PASSED)
        with pytest.raises(InvalidTransition):
            progression.check_transition(
                Event.TEACHER_GRADED, QuizState.RETAKE_ALLOWED, QuizState.FAILED
            )

    def test_same_state_is_always_allowed(self):
        progression.check_transition(Event.ASSISTANCE_COMPLETED, QuizState.PASSED, QuizState.PASSED)

    def test_completion_after_status_reset(self):
        progression.check_transition(
            Event.ASSISTANCE_COMPLETED, QuizState.NOT_STARTED, QuizState.MUST_RETAKE
        )

    def test_rejected_transition_is_a_domain_error(self):
        with pytest.raises(QuizAssistError) as exc_info:
            progression.check_transition(
                Event.ASSISTANCE_COMPLETED, QuizState.ASSISTANCE_LEVEL1, QuizState.PASSED
            )
        assert exc_info.value.status_code == 409
        assert exc_info.value.details["source"] == "ASSISTANCE_LEVEL1"
