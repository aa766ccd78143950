"""async-emitter — event emitter with counted asynchronous completion."""

from async_emitter.core.config import ConfigManager, EmitterConfig
from async_emitter.core.emitter import Emitter, Listener
from async_emitter.core.exceptions import (
    CompletionError,
    ConfigError,
    DuplicateCompletionError,
    EmitterError,
    ExcessCompletionError,
    InvalidCallbackError,
    MisappliedEmitterError,
    SynchronousCompletionError,
    UnknownCallbackError,
)

__all__ = [
    "CompletionError",
    "ConfigError",
    "ConfigManager",
    "DuplicateCompletionError",
    "Emitter",
    "EmitterConfig",
    "EmitterError",
    "ExcessCompletionError",
    "InvalidCallbackError",
    "Listener",
    "MisappliedEmitterError",
    "SynchronousCompletionError",
    "UnknownCallbackError",
]
