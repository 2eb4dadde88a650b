"""
Error types for the meal logger.

Only ConfigurationError is meant to escape MealAnalyzer.process_message();
everything else is caught at the call site that raised it and turned into
a user-facing fallback.
"""


class MealLoggerError(Exception):
    """Base class for all meal logger errors."""


class ConfigurationError(MealLoggerError):
    """Credentials for an external service are missing. Fatal."""


class CollaboratorCallError(MealLoggerError):
    """Network/HTTP/SDK failure while talking to OpenAI or Nutritionix."""


class CollaboratorParseError(MealLoggerError):
    """A collaborator answered, but not in the shape we asked for."""


class UserInputError(MealLoggerError):
    """The user's message can't be processed as given (empty, no foods)."""
