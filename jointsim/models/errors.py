"""Errors raised by the model-fitting wrappers."""


class ModelFitError(RuntimeError):
    """A delegated model fit failed.

    Args:
        stage: Which fit failed ("longitudinal", "survival" or "joint").
        message: Description of the failure.
    """

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage} fit failed: {message}")
        self.stage = stage
        self.message = message
