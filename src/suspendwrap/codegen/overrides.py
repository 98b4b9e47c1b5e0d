"""Inference of the override flag on wrapper methods."""

from typing import Optional

from suspendwrap.model import GeneratedInterfaceBinding, MethodDescription


def has_same_signature(method: MethodDescription, other: MethodDescription) -> bool:
    """Names are equal and parameter lists are equal (name, type and kind, in order).

    This is stricter than Python's own notion of compatible signatures: two methods
    whose parameters only differ in name are *not* the same signature. Generated
    interfaces are built from the same class description, so they always match.
    """
    return method.name == other.name and method.parameters == other.parameters


def needs_override(method: MethodDescription, generated_interface: Optional[GeneratedInterfaceBinding]) -> bool:
    """Check if a wrapper method has to be flagged as overriding the generated interface.

    The generated interface and the wrapper aren't related through the wrapped class'
    hierarchy, so the flag has to be added explicitly.
    """
    if generated_interface is None:
        return False
    return any(has_same_signature(method, declared) for declared in generated_interface.methods)
