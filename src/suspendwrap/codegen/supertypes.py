"""Resolution of the supertypes declared by a generated wrapper."""

from typing import Optional, Sequence

from suspendwrap.model import GeneratedInterfaceBinding, InterfaceSubstitutionBinding, TypeReference


def resolve_supertypes(
    declared: Sequence[TypeReference],
    substitution: Optional[InterfaceSubstitutionBinding] = None,
    generated_interface: Optional[GeneratedInterfaceBinding] = None,
) -> tuple[TypeReference, ...]:
    """Compute the ordered supertypes of a wrapper.

    1. Keep all supertypes declared by the original class, in order.
    2. (optionally) Replace the one that has its own generated wrapper interface.
    3. (optionally) Append the interface generated from the class itself.

    Args:
        declared: Supertypes declared by the wrapped class
        substitution: Original interface -> generated wrapper interface
        generated_interface: Interface generated from the wrapped class

    Returns:
        Tuple of supertypes for the wrapper
    """
    supertypes = [
        substitution.generated if substitution is not None and supertype == substitution.original else supertype
        for supertype in declared
    ]
    if generated_interface is not None:
        supertypes.append(generated_interface.type)
    return tuple(supertypes)
