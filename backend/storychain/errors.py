"""Domain exceptions raised by services and translated to HTTP by routers."""


class StoryChainError(Exception):
    """Base class for service-level errors."""


class NotFoundError(StoryChainError):
    """The requested entity does not exist."""


class ConflictError(StoryChainError):
    """The write would violate a uniqueness rule or a one-time setup step."""


class PermissionDeniedError(StoryChainError):
    """The caller is authenticated but not allowed to perform the action."""


class InvalidCredentialsError(StoryChainError):
    """Unknown email or wrong password."""


class AccountStatusError(StoryChainError):
    """The account exists but its status does not allow logging in."""


class InvalidInputError(StoryChainError):
    """The request is well-formed but its values are not acceptable."""
