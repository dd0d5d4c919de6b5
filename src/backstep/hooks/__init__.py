"""Tool-invocation hook recorder."""

from backstep.hooks.recorder import HookRecorder

__all__ = ["HookRecorder"]
