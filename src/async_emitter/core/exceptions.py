"""Exception hierarchy for the async-emitter package.

Every error here signals a programming mistake at the call site or inside a
listener. None of them is meant to be caught and retried.
"""


class EmitterError(Exception):
    """Base exception for all async-emitter errors."""


class ConfigError(EmitterError):
    """Raised when emitter configuration values are malformed."""


class InvalidCallbackError(EmitterError):
    """Raised when a listener or completion callback is not callable."""


class UnknownCallbackError(EmitterError):
    """Raised when deregistering a callback that was never registered."""


class CompletionError(EmitterError):
    """Base for violations of the per-emit completion protocol."""


class DuplicateCompletionError(CompletionError):
    """Raised when completion is reached again after it was already delivered."""


class ExcessCompletionError(CompletionError):
    """Raised when more completion signals arrive than listeners were invoked."""


class SynchronousCompletionError(CompletionError):
    """Raised in strict mode when a listener signals before dispatch finished."""


class MisappliedEmitterError(EmitterError):
    """Raised in strict mode when emitter state is used without ``Emitter.__init__``."""
