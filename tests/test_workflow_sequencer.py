"""Tests for step reachability, progress and auto-advance"""

import pytest

from studio_core.exceptions import StepNotReachableError
from studio_core.models import GeneratedImage, WorkflowStep, WORKFLOW_STEPS
from studio_core.workflow import WorkflowSequencer, WorkflowStore


def add_image(store, image_id="img-1"):
    store.add_generated_image(GeneratedImage(url="https://cdn.example.com/x.png", prompt="fox", id=image_id))


class TestReachability:
    def test_fresh_workflow(self, sequencer):
        assert sequencer.reachability() == {
            "prompt": True,
            "generate": False,
            "enhance": False,
            "export": False,
        }

    def test_earlier_steps_always_reachable(self, store, sequencer):
        store.set_current_step(WorkflowStep.EXPORT)
        for step in WORKFLOW_STEPS:
            assert sequencer.can_proceed_to_step(step)

    def test_later_step_needs_previous_completed(self, store, sequencer):
        store.complete_step(WorkflowStep.PROMPT)
        assert sequencer.can_proceed_to_step(WorkflowStep.GENERATE)
        assert not sequencer.can_proceed_to_step(WorkflowStep.ENHANCE)

    def test_matches_rule_for_every_state(self, store, sequencer):
        # Every combination of current step and completed steps
        for current in WORKFLOW_STEPS:
            for mask in range(16):
                completed = frozenset(step for bit, step in enumerate(WORKFLOW_STEPS) if mask & (1 << bit))
                store.set_current_step(current)
                store._set(completed_steps=completed)
                for target in WORKFLOW_STEPS:
                    expected = (
                        target.index <= current.index
                        or target.index == 0
                        or WORKFLOW_STEPS[target.index - 1] in completed
                    )
                    assert sequencer.can_proceed_to_step(target) == expected

    def test_go_to_unreachable_step_raises(self, sequencer):
        with pytest.raises(StepNotReachableError) as exc_info:
            sequencer.go_to_step(WorkflowStep.EXPORT)
        assert exc_info.value.status_code == 409

    def test_go_to_reachable_step(self, store, sequencer):
        store.complete_step(WorkflowStep.PROMPT)
        sequencer.go_to_step("generate")
        assert store.state.current_step == WorkflowStep.GENERATE


class TestProgress:
    @pytest.mark.parametrize("step,expected", [
        (WorkflowStep.PROMPT, 25.0),
        (WorkflowStep.GENERATE, 50.0),
        (WorkflowStep.ENHANCE, 75.0),
        (WorkflowStep.EXPORT, 100.0),
    ])
    def test_progress(self, store, sequencer, step, expected):
        store.set_current_step(step)
        assert sequencer.get_step_progress() == expected

    def test_next_step(self, store, sequencer):
        assert sequencer.get_next_step() == WorkflowStep.GENERATE
        store.set_current_step(WorkflowStep.EXPORT)
        assert sequencer.get_next_step() is None


class TestAutoAdvance:
    def test_image_on_prompt_step_advances_to_enhance(self, store, sequencer):
        add_image(store)
        state = store.state
        assert state.current_step == WorkflowStep.ENHANCE
        assert {WorkflowStep.PROMPT, WorkflowStep.GENERATE} <= state.completed_steps

    def test_no_advance_from_other_steps(self, store, sequencer):
        store.complete_step(WorkflowStep.PROMPT)
        store.set_current_step(WorkflowStep.GENERATE)
        add_image(store)
        assert store.state.current_step == WorkflowStep.GENERATE

    def test_attach_applies_rule_immediately(self):
        store = WorkflowStore()
        add_image(store)
        assert store.state.current_step == WorkflowStep.PROMPT

        sequencer = WorkflowSequencer(store)
        sequencer.attach()
        assert store.state.current_step == WorkflowStep.ENHANCE
        sequencer.detach()

    def test_detached_sequencer_does_not_advance(self, store):
        sequencer = WorkflowSequencer(store)
        sequencer.attach()
        sequencer.detach()
        assert not sequencer.attached
        add_image(store)
        assert store.state.current_step == WorkflowStep.PROMPT

    def test_returning_to_prompt_with_images_advances_again(self, store, sequencer):
        add_image(store)
        store.set_current_step(WorkflowStep.PROMPT)
        assert store.state.current_step == WorkflowStep.ENHANCE

    def test_listeners_see_the_advanced_step(self, store, sequencer):
        steps = []
        store.subscribe(lambda value, old: steps.append(value), selector=lambda s: s.current_step)
        add_image(store)
        assert steps[-1] == WorkflowStep.ENHANCE
