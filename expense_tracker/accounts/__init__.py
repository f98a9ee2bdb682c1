"""Account registration package."""

from expense_tracker.accounts.registration import RegistrationService

__all__ = ["RegistrationService"]
