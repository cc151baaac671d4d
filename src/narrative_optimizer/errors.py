"""Error types for the optimization layer.

Only ``ProviderError`` (and its subclasses) and ``ConfigError`` cross the
component boundary. ``CacheError`` is raised by tiers and absorbed by the
composite cache, which logs it and treats the tier as absent.
"""


class OptimizerError(Exception):
    """Base error for all optimization layer failures."""


class ProviderError(OptimizerError):
    """The text-generation provider failed (network, auth, quota, timeout)."""

    def __init__(self, detail: str = "", provider: str | None = None) -> None:
        self.detail = detail
        self.provider = provider
        prefix = f"Provider '{provider}' failed" if provider else "Provider failed"
        super().__init__(prefix + (f": {detail}" if detail else ""))


class BudgetExceededError(ProviderError):
    """The configured daily cost budget would be exceeded by this request."""

    def __init__(self, used: float, limit: float, predicted: float) -> None:
        self.used = used
        self.limit = limit
        self.predicted = predicted
        super().__init__(
            f"daily budget exhausted (used ${used:.4f} of ${limit:.2f}, "
            f"request needs ~${predicted:.4f})"
        )


class ConfigError(OptimizerError):
    """Invalid configuration detected at construction time."""


class CacheError(OptimizerError):
    """A cache tier failed to read or write."""

    def __init__(self, tier: str, operation: str, detail: str = "") -> None:
        self.tier = tier
        self.operation = operation
        self.detail = detail
        msg = f"Cache tier '{tier}' failed during {operation}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)
