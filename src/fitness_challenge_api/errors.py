"""Domain errors raised by the challenge services.

Routes translate these into HTTP responses; services never raise
HTTPException themselves.
"""


class ChallengeError(Exception):
    """Base class for all challenge errors."""


class PlanUnavailableError(ChallengeError):
    """The workout plan for a routine could not be resolved or fetched."""


class PlanFormatError(PlanUnavailableError):
    """The plan payload is not a usable CSV (e.g. no header row)."""


class ProfileNotFoundError(ChallengeError):
    """No profile row exists for the requested user."""


class BackendUnavailableError(ChallengeError):
    """Supabase is not configured or could not be reached."""


class UnauthorizedCompletionError(ChallengeError):
    """The caller tried to mutate another user's progress."""


class DayNotCompletableError(ChallengeError):
    """Today's view does not allow completion yet (or at all)."""


class DayAlreadyCompletedError(ChallengeError):
    """The user already completed a day on this date."""


class ProgressConflictError(ChallengeError):
    """The streak changed between read and write."""


class NotificationDeliveryError(ChallengeError):
    """An email could not be delivered after retries."""


class InvalidWeightError(ChallengeError):
    """A logged weight is outside the accepted range."""
