"""Error types surfaced to the fuxi command line."""


class FuxiError(Exception):
    """Base class for every error the CLI reports and exits non-zero on."""


class ConfigError(FuxiError):
    """The settings file or its directory could not be resolved or written."""


class GitError(FuxiError):
    """A git invocation exited non-zero; the message carries its stderr."""


class CopyError(FuxiError):
    """A filesystem operation failed while syncing a path."""


class UserInputError(FuxiError):
    """A required argument or precondition (profile, repository) is missing."""
