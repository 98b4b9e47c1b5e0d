class SuspendWrapError(Exception):
    """Base class for errors raised while generating wrappers."""


class MissingScopeProviderError(SuspendWrapError):
    """A deferred or streaming method was adapted without an execution scope provider."""

    def __init__(self, class_name: str, method_name: str):
        self.class_name = class_name
        self.method_name = method_name
        super().__init__(
            f"{class_name}.{method_name} is async and needs an execution scope provider, but none was configured. "
            "Pass scope_provider='package.module.attribute' to the Module that wraps this class."
        )
