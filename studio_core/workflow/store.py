"""
Workflow state container

One ``WorkflowStore`` per wizard session. It is constructed explicitly and
passed to whatever needs it; there is no module-level instance.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, FrozenSet, List, Optional, Tuple

from ..config import PROMPT_HISTORY_LIMIT
from ..exceptions import UnknownImageError
from ..models.workflow import (
    WorkflowStep,
    EnhancementType,
    GeneratedImage,
    Model3D,
)

logger = logging.getLogger(__name__)

Listener = Callable[[Any, Any], None]
Selector = Callable[["WorkflowState"], Any]


@dataclass(frozen=True)
class WorkflowState:
    """Immutable snapshot; every mutation produces a new instance"""
    current_step: WorkflowStep = WorkflowStep.PROMPT
    completed_steps: FrozenSet[WorkflowStep] = frozenset()
    prompt: str = ""
    prompt_history: Tuple[str, ...] = ()
    is_generating: bool = False
    generated_images: Tuple[GeneratedImage, ...] = ()
    selected_image_id: Optional[str] = None
    is_enhancing: bool = False
    enhancement_type: Optional[EnhancementType] = None
    is_3d_generating: bool = False
    generated_models: Tuple[Model3D, ...] = ()
    sidebar_collapsed: bool = False
    show_onboarding: bool = True

    @property
    def selected_image(self) -> Optional[GeneratedImage]:
        for image in self.generated_images:
            if image.id == self.selected_image_id:
                return image
        return None

    @property
    def is_any_loading(self) -> bool:
        return self.is_generating or self.is_enhancing or self.is_3d_generating

    def find_image(self, image_id: str) -> Optional[GeneratedImage]:
        for image in self.generated_images:
            if image.id == image_id:
                return image
        return None

    def to_dict(self):
        return {
            "currentStep": self.current_step.value,
            "completedSteps": [step.value for step in WorkflowStep if step in self.completed_steps],
            "prompt": self.prompt,
            "promptHistory": list(self.prompt_history),
            "isGenerating": self.is_generating,
            "generatedImages": [image.to_dict() for image in self.generated_images],
            "selectedImageId": self.selected_image_id,
            "isEnhancing": self.is_enhancing,
            "enhancementType": self.enhancement_type.value if self.enhancement_type else None,
            "is3DGenerating": self.is_3d_generating,
            "generatedModels": [model.to_dict() for model in self.generated_models],
            "sidebarCollapsed": self.sidebar_collapsed,
            "showOnboarding": self.show_onboarding,
        }


@dataclass
class _Subscription:
    listener: Listener
    selector: Optional[Selector] = None
    last_value: Any = None

    def notify(self, state: WorkflowState, previous: WorkflowState):
        if self.selector is None:
            self.listener(state, previous)
            return
        value = self.selector(state)
        if value != self.last_value:
            old_value, self.last_value = self.last_value, value
            self.listener(value, old_value)


class WorkflowStore:
    """Holds the wizard state and notifies subscribers after each mutation"""

    def __init__(self, initial_state: Optional[WorkflowState] = None):
        self._state = initial_state or WorkflowState()
        self._subscriptions: List[_Subscription] = []
        self._notifying = False

    @property
    def state(self) -> WorkflowState:
        return self._state

    def snapshot(self):
        return self._state.to_dict()

    # Subscriptions

    def subscribe(self, listener: Listener, selector: Optional[Selector] = None) -> Callable[[], None]:
        """
        Register ``listener``; returns a callable that unsubscribes it

        Without a selector the listener receives ``(state, previous_state)``
        after every mutation. With a selector it receives
        ``(value, previous_value)`` only when the selected value changed.
        """
        subscription = _Subscription(
            listener,
            selector,
            selector(self._state) if selector else None,
        )
        self._subscriptions.append(subscription)

        def unsubscribe():
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

        return unsubscribe

    def _set(self, **changes):
        previous = self._state
        self._state = replace(previous, **changes)
        if self._notifying:
            # Mutation from inside a listener; the outer loop delivers it
            return

        self._notifying = True
        try:
            delivered = previous
            while delivered is not self._state:
                current = self._state
                for subscription in list(self._subscriptions):
                    subscription.notify(current, delivered)
                delivered = current
        finally:
            self._notifying = False

    # Actions

    def set_current_step(self, step: WorkflowStep):
        self._set(current_step=WorkflowStep(step))

    def complete_step(self, step: WorkflowStep):
        step = WorkflowStep(step)
        if step in self._state.completed_steps:
            return
        self._set(completed_steps=self._state.completed_steps | {step})

    def set_prompt(self, prompt: str):
        self._set(prompt=prompt)

    def add_to_prompt_history(self, prompt: str):
        history = self._state.prompt_history
        if prompt in history:
            return
        self._set(prompt_history=((prompt,) + history)[:PROMPT_HISTORY_LIMIT])

    def set_generating(self, is_generating: bool):
        self._set(is_generating=is_generating)

    def add_generated_image(self, image: GeneratedImage):
        self._set(
            generated_images=(image,) + self._state.generated_images,
            selected_image_id=image.id,
        )
        logger.debug(f"Added generated image {image.id}")

    def update_image_background_removed(self, image_id: str, background_removed_url: str):
        images = self._state.generated_images
        if not any(image.id == image_id for image in images):
            return
        self._set(generated_images=tuple(
            replace(image, background_removed_url=background_removed_url) if image.id == image_id else image
            for image in images
        ))

    def set_selected_image(self, image_id: Optional[str]):
        if image_id is not None and self._state.find_image(image_id) is None:
            raise UnknownImageError(image_id)
        self._set(selected_image_id=image_id)

    def set_enhancing(self, is_enhancing: bool):
        self._set(is_enhancing=is_enhancing)

    def set_enhancement_type(self, enhancement_type: Optional[EnhancementType]):
        self._set(enhancement_type=EnhancementType(enhancement_type) if enhancement_type else None)

    def set_3d_generating(self, is_generating: bool):
        self._set(is_3d_generating=is_generating)

    def add_generated_model(self, model: Model3D):
        self._set(generated_models=(model,) + self._state.generated_models)

    def set_sidebar_collapsed(self, collapsed: bool):
        self._set(sidebar_collapsed=collapsed)

    def set_show_onboarding(self, show: bool):
        self._set(show_onboarding=show)

    def reset_workflow(self):
        """Back to the initial state, keeping prompt history and UI preferences"""
        initial = WorkflowState()
        self._set(**{
            name: getattr(initial, name)
            for name in WorkflowState.__dataclass_fields__
            if name not in ("prompt_history", "sidebar_collapsed", "show_onboarding")
        }, show_onboarding=False)
