"""Rewriting of wrapped methods into non-suspending delegating methods.

1) Direct methods are called on the wrapped instance as-is.
2) Async methods return a DeferredWrapper[T] instead of being awaited.
3) Methods returning an async iterator return a StreamWrapper[T] instead.
"""

import dataclasses
import logging
from typing import Optional

import typing_extensions

from suspendwrap.exceptions import MissingScopeProviderError
from suspendwrap.model import (
    CallingConvention,
    DeferredWrap,
    DelegateCall,
    Expression,
    GeneratedInterfaceBinding,
    MethodDescription,
    Modifier,
    ScopeProvider,
    StreamWrap,
    TypeReference,
)

from .overrides import needs_override

logger = logging.getLogger(__name__)

WRAPPED_FIELD_NAME = "wrapped"

RUNTIME_MODULE = "suspendwrap.runtime"
DEFERRED_WRAPPER = TypeReference("DeferredWrapper", RUNTIME_MODULE)
STREAM_WRAPPER = TypeReference("StreamWrapper", RUNTIME_MODULE)

ASYNC_ITERATOR_NAMES = frozenset({"AsyncIterator", "AsyncIterable", "AsyncGenerator"})


def stream_element_type(return_type: Optional[TypeReference]) -> Optional[TypeReference]:
    """Get T out of AsyncIterator[T], AsyncIterable[T] or AsyncGenerator[T, S]."""
    if return_type is None or return_type.name not in ASYNC_ITERATOR_NAMES or not return_type.arguments:
        return None
    return return_type.arguments[0]


def wrapped_return_type(method: MethodDescription) -> Optional[TypeReference]:
    """The return type a wrapper exposes for ``method``."""
    convention = method.calling_convention
    if convention is CallingConvention.DIRECT:
        return method.return_type
    elif convention is CallingConvention.DEFERRED:
        if method.return_type is None:
            return DEFERRED_WRAPPER
        return dataclasses.replace(DEFERRED_WRAPPER, arguments=(method.return_type,))
    elif convention is CallingConvention.STREAMING:
        element_type = stream_element_type(method.return_type)
        if element_type is None:
            return STREAM_WRAPPER
        return dataclasses.replace(STREAM_WRAPPER, arguments=(element_type,))
    else:
        typing_extensions.assert_never(convention)


def build_invocation(method: MethodDescription, delegate_field: str = WRAPPED_FIELD_NAME) -> DelegateCall:
    """``<delegate_field>.<name>(<parameters in declared order>)``"""
    return DelegateCall(receiver=delegate_field, method=method.name, arguments=method.parameters)


def build_body(method: MethodDescription, scope: Optional[str], delegate_field: str = WRAPPED_FIELD_NAME) -> Expression:
    invocation = build_invocation(method, delegate_field)
    convention = method.calling_convention
    if convention is CallingConvention.DIRECT:
        return invocation
    elif convention is CallingConvention.DEFERRED:
        return DeferredWrap(scope=scope, call=invocation)
    elif convention is CallingConvention.STREAMING:
        return StreamWrap(scope=scope, call=invocation)
    else:
        typing_extensions.assert_never(convention)


def adapt_signature(method: MethodDescription) -> MethodDescription:
    """Signature of the wrapper method, without a body.

    The suspension marker is always removed: wrapper methods never suspend.
    """
    return dataclasses.replace(
        method,
        return_type=wrapped_return_type(method),
        calling_convention=CallingConvention.DIRECT,
        modifiers=method.modifiers - {Modifier.SUSPEND},
        body=None,
    )


def adapt_method(
    method: MethodDescription,
    scope_provider: Optional[ScopeProvider] = None,
    generated_interface: Optional[GeneratedInterfaceBinding] = None,
    delegate_field: str = WRAPPED_FIELD_NAME,
    class_name: str = "",
) -> MethodDescription:
    """
    Rewrite a method of the wrapped class into a delegating wrapper method.

    Args:
        method: The method as declared on the wrapped class
        scope_provider: Execution scope for deferred and streaming calls
        generated_interface: Interface generated from the wrapped class, if any
        delegate_field: Name of the wrapper field holding the wrapped instance
        class_name: Name of the wrapped class, for error messages

    Returns:
        The wrapper method, with a single delegating expression as body

    Raises:
        MissingScopeProviderError: If the method is deferred or streaming and there's no scope provider
    """
    if method.calling_convention is not CallingConvention.DIRECT and scope_provider is None:
        raise MissingScopeProviderError(class_name, method.name)

    scope = scope_provider.name if scope_provider is not None else None
    adapted = adapt_signature(method)
    modifiers = adapted.modifiers
    if needs_override(adapted, generated_interface):
        modifiers = modifiers | {Modifier.OVERRIDE}

    logger.debug("Adapted %s.%s (%s)", class_name, method.name, method.calling_convention.value)
    return dataclasses.replace(adapted, modifiers=modifiers, body=build_body(method, scope, delegate_field))
