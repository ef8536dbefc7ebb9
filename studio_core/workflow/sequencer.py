"""
Step reachability, progress and auto-advance derived from a WorkflowStore
"""

import logging
from typing import Callable, Dict, Optional

from ..exceptions import StepNotReachableError
from ..models.workflow import WorkflowStep, WORKFLOW_STEPS
from .store import WorkflowStore, WorkflowState

logger = logging.getLogger(__name__)


class WorkflowSequencer:
    """Applies the wizard's progression rules to a store"""

    def __init__(self, store: WorkflowStore):
        self.store = store
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def attach(self):
        """Start auto-advancing; applies the rule once immediately"""
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_change)
            self._auto_advance(self.store.state)

    def detach(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_change(self, state: WorkflowState, previous: WorkflowState):
        self._auto_advance(state)

    def _auto_advance(self, state: WorkflowState):
        if state.current_step == WorkflowStep.PROMPT and state.generated_images:
            logger.debug("Images present on the prompt step, advancing to enhance")
            self.store.complete_step(WorkflowStep.PROMPT)
            self.store.complete_step(WorkflowStep.GENERATE)
            self.store.set_current_step(WorkflowStep.ENHANCE)

    def can_proceed_to_step(self, step: WorkflowStep) -> bool:
        step = WorkflowStep(step)
        state = self.store.state
        step_index = step.index

        if step_index <= state.current_step.index:
            return True
        if step_index == 0:
            return True
        return WORKFLOW_STEPS[step_index - 1] in state.completed_steps

    def get_step_progress(self) -> float:
        return (self.store.state.current_step.index + 1) / len(WORKFLOW_STEPS) * 100

    def get_next_step(self) -> Optional[WorkflowStep]:
        index = self.store.state.current_step.index
        if index < len(WORKFLOW_STEPS) - 1:
            return WORKFLOW_STEPS[index + 1]
        return None

    def reachability(self) -> Dict[str, bool]:
        return {step.value: self.can_proceed_to_step(step) for step in WORKFLOW_STEPS}

    def go_to_step(self, step: WorkflowStep):
        step = WorkflowStep(step)
        if not self.can_proceed_to_step(step):
            raise StepNotReachableError(step.value, self.store.state.current_step.value)
        self.store.set_current_step(step)
