"""Domain controllers that sit between the editor and the AI gateway."""

from .preview_controller import ConfirmOutcome, PreviewController, PreviewPhase, PreviewState

__all__ = ["ConfirmOutcome", "PreviewController", "PreviewPhase", "PreviewState"]
