"""Build class descriptions from live Python classes."""

import abc
import collections.abc
import inspect
import logging
import types
import typing

import sigtools.specifiers  # type: ignore
import typing_extensions
from sigtools._signatures import EmptyAnnotation  # type: ignore

from .model import (
    CallingConvention,
    ClassDescription,
    MethodDescription,
    Modifier,
    Parameter,
    ParameterKind,
    TypeReference,
)

logger = logging.getLogger(__name__)

ASYNC_ITERATOR_ORIGINS = (
    collections.abc.AsyncIterator,
    collections.abc.AsyncIterable,
    collections.abc.AsyncGenerator,
)

# bases that only mark a class as protocol or abstract
_MARKER_BASES = (typing.Protocol, typing_extensions.Protocol, abc.ABC)

_PARAMETER_KINDS = {
    inspect.Parameter.POSITIONAL_ONLY: ParameterKind.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD: ParameterKind.POSITIONAL_OR_KEYWORD,
    inspect.Parameter.VAR_POSITIONAL: ParameterKind.VAR_POSITIONAL,
    inspect.Parameter.KEYWORD_ONLY: ParameterKind.KEYWORD_ONLY,
    inspect.Parameter.VAR_KEYWORD: ParameterKind.VAR_KEYWORD,
}


def type_reference(annotation) -> TypeReference:
    """Convert a type annotation into a TypeReference."""
    if annotation is None or annotation is type(None):
        return TypeReference("None")
    if isinstance(annotation, str):
        return TypeReference(annotation)
    if isinstance(annotation, typing.ForwardRef):
        return TypeReference(annotation.__forward_arg__)
    if isinstance(annotation, (typing.TypeVar, typing_extensions.ParamSpec)):
        return TypeReference(annotation.__name__)

    origin = typing_extensions.get_origin(annotation)
    if origin is not None:
        args = typing_extensions.get_args(annotation)
        if origin is types.UnionType:
            origin = typing.Union
        base = type_reference(origin)
        return TypeReference(base.name, base.module, tuple(_argument_reference(arg) for arg in args))

    if isinstance(annotation, type):
        module = None if annotation.__module__ == "builtins" else annotation.__module__
        return TypeReference(annotation.__qualname__, module)

    name = getattr(annotation, "_name", None) or getattr(annotation, "__name__", None)
    module = getattr(annotation, "__module__", None)
    if name is not None:
        return TypeReference(name, None if module == "builtins" else module)
    return TypeReference(repr(annotation))


def _argument_reference(arg) -> TypeReference:
    if isinstance(arg, (list, tuple)):
        # Callable[[A, B], R]
        return TypeReference("[" + ", ".join(type_reference(a).qualified_name() for a in arg) + "]")
    if arg is Ellipsis:
        return TypeReference("...")
    if isinstance(arg, str):
        # Literal["x"], not a forward reference
        return TypeReference(repr(arg))
    return type_reference(arg)


def is_streaming(func, return_annotation) -> bool:
    """
    Check if a callable returns an async iterator.

    Args:
        func: The function to check
        return_annotation: The resolved return type annotation

    Returns:
        True for async generator functions and functions annotated to return an async iterator
    """
    if inspect.isasyncgenfunction(func):
        return True

    if return_annotation is not inspect.Signature.empty:
        return typing_extensions.get_origin(return_annotation) in ASYNC_ITERATOR_ORIGINS or (
            return_annotation in ASYNC_ITERATOR_ORIGINS
        )

    return False


def calling_convention(func, return_annotation=inspect.Signature.empty) -> CallingConvention:
    # a coroutine returning an async iterator is still awaited first
    if inspect.iscoroutinefunction(func):
        return CallingConvention.DEFERRED
    if is_streaming(func, return_annotation):
        return CallingConvention.STREAMING
    return CallingConvention.DIRECT


def _resolved_annotations(func) -> dict[str, typing.Any]:
    try:
        return inspect.get_annotations(func, eval_str=True)
    except Exception:
        logger.debug("Could not evaluate annotations of %s, using them unevaluated", func.__qualname__)
        return inspect.get_annotations(func)


def describe_method(func) -> MethodDescription:
    """Describe a function defined on a class.

    The first positional parameter is the receiver and is dropped, whatever its name.
    """
    annotations = _resolved_annotations(func)
    sig = sigtools.specifiers.signature(func)

    parameters = []
    for i, param in enumerate(sig.parameters.values()):
        if i == 0 and param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            continue
        if param.name in annotations:
            annotation = annotations[param.name]
        elif param.annotation is not inspect.Parameter.empty and param.upgraded_annotation is not EmptyAnnotation:
            annotation = param.upgraded_annotation.source_value()
        else:
            annotation = param.annotation
        parameters.append(
            Parameter(
                name=param.name,
                type=None if annotation is inspect.Parameter.empty else type_reference(annotation),
                kind=_PARAMETER_KINDS[param.kind],
                default=None if param.default is inspect.Parameter.empty else repr(param.default),
            )
        )

    return_annotation = annotations.get("return", sig.return_annotation)
    convention = calling_convention(func, return_annotation)

    modifiers = set()
    if convention is CallingConvention.DEFERRED:
        modifiers.add(Modifier.SUSPEND)
    if getattr(func, "__override__", False):
        modifiers.add(Modifier.OVERRIDE)

    return MethodDescription(
        name=func.__name__,
        parameters=tuple(parameters),
        return_type=None if return_annotation is inspect.Signature.empty else type_reference(return_annotation),
        calling_convention=convention,
        modifiers=frozenset(modifiers),
        docstring=inspect.getdoc(func),
    )


def is_interface(base: type) -> bool:
    """Protocols and abstract base classes count as interfaces."""
    if base in _MARKER_BASES:
        return False
    return typing_extensions.is_protocol(base) or isinstance(base, abc.ABCMeta)


def describe_class(cls: type) -> ClassDescription:
    """
    Describe the public methods and interfaces of a class.

    Only methods declared on the class itself are described, in definition order.
    Private methods, static methods and class methods are skipped.

    Args:
        cls: The class to describe

    Returns:
        ClassDescription of the class

    Raises:
        TypeError: If cls isn't a class
    """
    if not isinstance(cls, type):
        raise TypeError(f"{cls!r} is not a class")

    methods = []
    for name, attr in cls.__dict__.items():
        if name.startswith("_") or not inspect.isfunction(attr):
            continue
        methods.append(describe_method(attr))

    supertypes = tuple(
        TypeReference(base.__qualname__, base.__module__) for base in cls.__bases__ if is_interface(base)
    )
    return ClassDescription(
        name=cls.__name__,
        module=cls.__module__,
        methods=tuple(methods),
        declared_supertypes=supertypes,
        docstring=inspect.getdoc(cls),
    )
