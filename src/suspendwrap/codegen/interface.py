"""Interfaces (protocols) generated from wrapped classes and wrapped protocols."""

import dataclasses
from typing import Optional

from suspendwrap.model import (
    ClassDescription,
    GeneratedInterfaceBinding,
    InterfaceDescription,
    MethodDescription,
    TypeReference,
)

from .adapter import adapt_signature


def _interface_method(method: MethodDescription) -> MethodDescription:
    return dataclasses.replace(adapt_signature(method), modifiers=frozenset())


def derive_interface(description: ClassDescription, interface_type: TypeReference) -> GeneratedInterfaceBinding:
    """Generate an interface mirroring the wrapper signatures of ``description``'s methods."""
    methods = tuple(_interface_method(method) for method in description.methods)
    return GeneratedInterfaceBinding(type=interface_type, methods=methods)


def interface_from_binding(binding: GeneratedInterfaceBinding, docstring: Optional[str] = None) -> InterfaceDescription:
    return InterfaceDescription(
        name=binding.type.name,
        module=binding.type.module,
        methods=binding.methods,
        docstring=docstring,
    )


def compile_interface(description: ClassDescription, name: str, target_module: Optional[str]) -> InterfaceDescription:
    """Compile a wrapped protocol into its non-suspending counterpart.

    Wrappers of classes implementing the original protocol implement this one instead.
    """
    binding = derive_interface(description, TypeReference(name, target_module))
    return interface_from_binding(binding, docstring=description.docstring)
