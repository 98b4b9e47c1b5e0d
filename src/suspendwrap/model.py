"""Descriptions of classes, methods and generated wrapper types.

Everything here is an immutable value object. The reader produces
``ClassDescription`` objects, the compiler turns them into
``WrapperTypeDescription`` objects and the emitter renders those as source.
"""

import enum
import typing
from dataclasses import dataclass, field
from typing import Optional


class CallingConvention(enum.Enum):
    """How a method hands its result to the caller."""

    DIRECT = "direct"
    DEFERRED = "deferred"  # coroutine function
    STREAMING = "streaming"  # async iterator


class Modifier(enum.Enum):
    SUSPEND = "async"
    OVERRIDE = "override"


class ParameterKind(enum.Enum):
    POSITIONAL_ONLY = "positional_only"
    POSITIONAL_OR_KEYWORD = "positional_or_keyword"
    VAR_POSITIONAL = "var_positional"
    KEYWORD_ONLY = "keyword_only"
    VAR_KEYWORD = "var_keyword"


@dataclass(frozen=True)
class TypeReference:
    """A nominal type, optionally qualified by module and parametrized.

    Two references are the same type when name, module and arguments match.
    """

    name: str
    module: Optional[str] = None
    arguments: tuple["TypeReference", ...] = ()

    def qualified_name(self) -> str:
        if self.module:
            return f"{self.module}.{self.name}"
        return self.name


@dataclass(frozen=True)
class Parameter:
    name: str
    type: Optional[TypeReference] = None
    kind: ParameterKind = ParameterKind.POSITIONAL_OR_KEYWORD
    # source text of the default value, e.g. "None" or "'utf-8'"
    default: Optional[str] = field(default=None, compare=False)


# Expression nodes used as method bodies


@dataclass(frozen=True)
class DelegateCall:
    """``<receiver>.<method>(<arguments>)`` where receiver is a field of the wrapper."""

    receiver: str
    method: str
    arguments: tuple[Parameter, ...] = ()


@dataclass(frozen=True)
class DeferredWrap:
    """A deferred-result wrapper around ``call``, run under ``scope``."""

    scope: Optional[str]
    call: DelegateCall


@dataclass(frozen=True)
class StreamWrap:
    """A stream wrapper around the async iterator returned by ``call``."""

    scope: Optional[str]
    call: DelegateCall


Expression = typing.Union[DelegateCall, DeferredWrap, StreamWrap]


@dataclass(frozen=True)
class MethodDescription:
    name: str
    parameters: tuple[Parameter, ...] = ()
    return_type: Optional[TypeReference] = None
    calling_convention: CallingConvention = CallingConvention.DIRECT
    modifiers: frozenset[Modifier] = frozenset()
    body: Optional[Expression] = None
    docstring: Optional[str] = field(default=None, compare=False)

    @property
    def is_suspend(self) -> bool:
        return Modifier.SUSPEND in self.modifiers

    @property
    def is_override(self) -> bool:
        return Modifier.OVERRIDE in self.modifiers


@dataclass(frozen=True)
class ClassDescription:
    name: str
    module: Optional[str] = None
    methods: tuple[MethodDescription, ...] = ()
    declared_supertypes: tuple[TypeReference, ...] = ()
    docstring: Optional[str] = field(default=None, compare=False)

    @property
    def type(self) -> TypeReference:
        return TypeReference(self.name, self.module)


@dataclass(frozen=True)
class GeneratedInterfaceBinding:
    """An interface synthesized from the wrapped class, which the wrapper also implements."""

    type: TypeReference
    methods: tuple[MethodDescription, ...] = ()


@dataclass(frozen=True)
class InterfaceSubstitutionBinding:
    """Replace ``original`` with ``generated`` in the wrapper's supertypes."""

    original: TypeReference
    generated: TypeReference


@dataclass(frozen=True)
class ScopeProvider:
    """A named value supplying the execution scope of deferred and streaming calls."""

    name: str
    module: Optional[str] = None

    @classmethod
    def from_path(cls, path: str) -> "ScopeProvider":
        """Parse a dotted ``package.module.attribute`` path."""
        if "." not in path:
            return cls(path)
        module, name = path.rsplit(".", 1)
        return cls(name, module)


@dataclass(frozen=True)
class GenerationContext:
    wrapper_name: str
    module: Optional[str] = None
    scope_provider: Optional[ScopeProvider] = None
    generated_interface: Optional[GeneratedInterfaceBinding] = None
    interface_substitution: Optional[InterfaceSubstitutionBinding] = None


@dataclass(frozen=True)
class FieldDescription:
    name: str
    type: TypeReference
    private: bool = True


@dataclass(frozen=True)
class ConstructorDescription:
    parameters: tuple[Parameter, ...]
    # field names initialized from the parameter of the same name
    assigns: tuple[str, ...] = ()


@dataclass(frozen=True)
class WrapperTypeDescription:
    name: str
    supertypes: tuple[TypeReference, ...]
    methods: tuple[MethodDescription, ...]
    delegate_field: FieldDescription
    constructor: ConstructorDescription
    module: Optional[str] = None
    docstring: Optional[str] = field(default=None, compare=False)

    @property
    def type(self) -> TypeReference:
        return TypeReference(self.name, self.module)


@dataclass(frozen=True)
class InterfaceDescription:
    """A generated protocol: method signatures without bodies."""

    name: str
    methods: tuple[MethodDescription, ...]
    module: Optional[str] = None
    supertypes: tuple[TypeReference, ...] = ()
    docstring: Optional[str] = field(default=None, compare=False)

    @property
    def type(self) -> TypeReference:
        return TypeReference(self.name, self.module)
