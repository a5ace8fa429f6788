"""Cross-entity validation package."""

from expense_manager.validation.validator import CrossEntityValidator

__all__ = ["CrossEntityValidator"]
