from .module import Module
from .runtime import DeferredWrapper, ExecutionScope, StreamWrapper

__all__ = ["Module", "ExecutionScope", "DeferredWrapper", "StreamWrapper"]
