"""Workflow-related exceptions."""


class WorkflowError(Exception):
    """Base exception for wizard state errors."""

    status_code = 400


class StepNotReachableError(WorkflowError):
    """Raised when navigating to a step whose predecessor is incomplete."""

    status_code = 409

    def __init__(self, step: str, current_step: str):
        self.step = step
        self.current_step = current_step
        super().__init__(
            f"Cannot move to step '{step}' from '{current_step}': "
            "the previous step is not complete"
        )


class UnknownImageError(WorkflowError):
    """Raised when an image id is not part of the generated images."""

    status_code = 404

    def __init__(self, image_id: str):
        self.image_id = image_id
        super().__init__(f"Unknown image id: {image_id}")


class UnknownSessionError(WorkflowError):
    """Raised when a workflow session id is not known."""

    status_code = 404

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Unknown workflow session: {session_id}")
