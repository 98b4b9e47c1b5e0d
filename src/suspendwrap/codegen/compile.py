"""Main compilation module: wrapper descriptions from class descriptions, and source for whole modules."""

from __future__ import annotations

import logging
import typing

from suspendwrap.model import (
    ClassDescription,
    ConstructorDescription,
    FieldDescription,
    GenerationContext,
    InterfaceDescription,
    InterfaceSubstitutionBinding,
    Parameter,
    TypeReference,
    WrapperTypeDescription,
)
from suspendwrap.reader import describe_class

from .adapter import WRAPPED_FIELD_NAME, adapt_method
from .emitter import emit_module
from .interface import compile_interface, derive_interface, interface_from_binding
from .supertypes import resolve_supertypes

if typing.TYPE_CHECKING:
    from suspendwrap.module import Module

logger = logging.getLogger(__name__)


def compile_class(description: ClassDescription, context: GenerationContext) -> WrapperTypeDescription:
    """Synthesize the wrapper type of a class.

    The wrapper holds an instance of the original class in a private ``wrapped``
    field and exposes every method of it with a non-suspending signature.

    Args:
        description: The class to wrap
        context: Wrapper name, execution scope provider and interface bindings

    Returns:
        Description of the wrapper type, ready to be emitted

    Raises:
        MissingScopeProviderError: If the class has async methods and the context has no scope provider
    """
    logger.debug("Compiling wrapper %s for %s", context.wrapper_name, description.type.qualified_name())

    supertypes = resolve_supertypes(
        description.declared_supertypes,
        context.interface_substitution,
        context.generated_interface,
    )
    methods = tuple(
        adapt_method(
            method,
            context.scope_provider,
            context.generated_interface,
            delegate_field=WRAPPED_FIELD_NAME,
            class_name=description.name,
        )
        for method in description.methods
    )

    wrapped_type = description.type
    return WrapperTypeDescription(
        name=context.wrapper_name,
        module=context.module,
        supertypes=supertypes,
        methods=methods,
        delegate_field=FieldDescription(WRAPPED_FIELD_NAME, wrapped_type, private=True),
        constructor=ConstructorDescription(
            parameters=(Parameter(WRAPPED_FIELD_NAME, wrapped_type),),
            assigns=(WRAPPED_FIELD_NAME,),
        ),
        docstring=f"Wrapper for {wrapped_type.qualified_name()} with non-suspending methods",
    )


def _find_substitution(
    description: ClassDescription, generated_interfaces: dict[TypeReference, TypeReference]
) -> typing.Optional[InterfaceSubstitutionBinding]:
    """Pick the declared supertype that has its own generated wrapper interface, if any."""
    candidates = [supertype for supertype in description.declared_supertypes if supertype in generated_interfaces]
    if not candidates:
        return None
    if len(candidates) > 1:
        logger.warning(
            "%s implements several wrapped interfaces (%s), only %s is replaced in its wrapper",
            description.name,
            ", ".join(candidate.qualified_name() for candidate in candidates),
            candidates[0].qualified_name(),
        )
    original = candidates[0]
    return InterfaceSubstitutionBinding(original=original, generated=generated_interfaces[original])


def generated_interfaces(modules: typing.Iterable[Module]) -> dict[TypeReference, TypeReference]:
    """Map every wrapped protocol to the interface generated for it."""
    mapping = {}
    for module in modules:
        for name, proto in module.registered_interfaces().items():
            mapping[TypeReference(proto.__qualname__, proto.__module__)] = TypeReference(name, module.target_module)
    return mapping


def compile_module(
    module: Module, substitutions: typing.Optional[dict[TypeReference, TypeReference]] = None
) -> str:
    """Compile all classes and protocols registered with a Module into one source module.

    Args:
        module: The Module with registered items
        substitutions: Wrapped protocols of all modules -> their generated interfaces

    Returns:
        Python source of the target module
    """
    if substitutions is None:
        substitutions = generated_interfaces([module])

    target_module = module.target_module
    interfaces: list[InterfaceDescription] = []
    wrappers: list[WrapperTypeDescription] = []

    for name, proto in module.registered_interfaces().items():
        interfaces.append(compile_interface(describe_class(proto), name, target_module))

    for wrapper_name, (cls, interface_name) in module.registered_classes().items():
        description = describe_class(cls)
        generated_interface = None
        if interface_name is not None:
            generated_interface = derive_interface(description, TypeReference(interface_name, target_module))
            interfaces.append(
                interface_from_binding(generated_interface, docstring=f"Interface of {wrapper_name}")
            )

        context = GenerationContext(
            wrapper_name=wrapper_name,
            module=target_module,
            scope_provider=module.scope_provider,
            generated_interface=generated_interface,
            interface_substitution=_find_substitution(description, substitutions),
        )
        wrappers.append(compile_class(description, context))

    return emit_module(target_module, interfaces, wrappers, module.scope_provider)


def _one_module_per_target(modules: typing.Iterable[Module]) -> list[Module]:
    """Pick one Module per target module.

    Modules with the same target share their registrations, so any of them can be
    compiled. One with a scope provider is preferred.
    """
    by_target: dict[str, Module] = {}
    for module in modules:
        current = by_target.get(module.target_module)
        if current is None or (current.scope_provider is None and module.scope_provider is not None):
            by_target[module.target_module] = module
        elif module.scope_provider is not None and module.scope_provider != current.scope_provider:
            logger.warning(
                "Modules targeting %s have different scope providers, using %s",
                module.target_module,
                current.scope_provider,
            )
    return list(by_target.values())


def compile_modules(modules: list[Module]) -> dict[str, str]:
    """Compile a list of Modules into source code, one entry per target module."""
    modules = _one_module_per_target(modules)
    substitutions = generated_interfaces(modules)
    result = {}
    for module in modules:
        logger.debug("Compiling module %s", module.target_module)
        result[module.target_module] = compile_module(module, substitutions)
    return result
