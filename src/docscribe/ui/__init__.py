"""Interactive surfaces used by the orchestrator."""

from docscribe.ui.confirmation import AutoConfirmation, ConfirmationPrompt, ConsoleConfirmation

__all__ = ["AutoConfirmation", "ConfirmationPrompt", "ConsoleConfirmation"]
