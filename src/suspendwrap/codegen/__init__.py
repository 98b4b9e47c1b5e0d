"""Code generation package for suspendwrap."""

# Re-export public functions
from .adapter import adapt_method
from .compile import compile_class, compile_module, compile_modules
from .emitter import emit_module
from .interface import derive_interface
from .overrides import needs_override
from .supertypes import resolve_supertypes

__all__ = [
    "adapt_method",
    "compile_class",
    "compile_module",
    "compile_modules",
    "derive_interface",
    "emit_module",
    "needs_override",
    "resolve_supertypes",
]
