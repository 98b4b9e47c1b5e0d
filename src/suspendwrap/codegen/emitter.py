"""Rendering of wrapper and interface descriptions as Python source."""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from suspendwrap.model import (
    DeferredWrap,
    DelegateCall,
    Expression,
    InterfaceDescription,
    MethodDescription,
    Modifier,
    Parameter,
    ParameterKind,
    ScopeProvider,
    StreamWrap,
    TypeReference,
    WrapperTypeDescription,
)

from .adapter import DEFERRED_WRAPPER, STREAM_WRAPPER

HEADER = "# Generated by suspendwrap - do not edit\n"
INDENT = "    "


def format_type(ref: TypeReference, target_module: Optional[str]) -> str:
    """Format a type reference, unqualified if it lives in the target module."""
    if ref.module and ref.module != target_module:
        type_str = f"{ref.module}.{ref.name}"
    else:
        type_str = ref.name
    if ref.arguments:
        type_str += "[" + ", ".join(format_type(arg, target_module) for arg in ref.arguments) + "]"
    return type_str


def _type_modules(ref: Optional[TypeReference]) -> Iterable[str]:
    if ref is None:
        return
    if ref.module:
        yield ref.module
    for arg in ref.arguments:
        yield from _type_modules(arg)


def _method_modules(method: MethodDescription) -> Iterable[str]:
    for param in method.parameters:
        yield from _type_modules(param.type)
    yield from _type_modules(method.return_type)


def format_parameters(parameters: Sequence[Parameter], target_module: Optional[str]) -> str:
    """Format parameter declarations, inserting ``/`` and ``*`` separators where needed."""
    params = []
    seen_star = False
    for i, param in enumerate(parameters):
        if param.kind is ParameterKind.KEYWORD_ONLY and not seen_star:
            params.append("*")
            seen_star = True

        if param.kind is ParameterKind.VAR_POSITIONAL:
            param_str = f"*{param.name}"
            seen_star = True
        elif param.kind is ParameterKind.VAR_KEYWORD:
            param_str = f"**{param.name}"
        else:
            param_str = param.name

        if param.type is not None:
            param_str += f": {format_type(param.type, target_module)}"
        if param.default is not None:
            param_str += f" = {param.default}"
        params.append(param_str)

        is_last_positional_only = param.kind is ParameterKind.POSITIONAL_ONLY and (
            i + 1 == len(parameters) or parameters[i + 1].kind is not ParameterKind.POSITIONAL_ONLY
        )
        if is_last_positional_only:
            params.append("/")
    return ", ".join(params)


def format_arguments(arguments: Sequence[Parameter]) -> str:
    """Format the arguments forwarding ``arguments`` to another callable."""
    args = []
    for param in arguments:
        if param.kind is ParameterKind.VAR_POSITIONAL:
            args.append(f"*{param.name}")
        elif param.kind is ParameterKind.VAR_KEYWORD:
            args.append(f"**{param.name}")
        elif param.kind is ParameterKind.KEYWORD_ONLY:
            args.append(f"{param.name}={param.name}")
        else:
            args.append(param.name)
    return ", ".join(args)


def field_attribute(name: str, private: bool) -> str:
    return f"_{name}" if private else name


@dataclass(frozen=True)
class BodyNames:
    """Module-level names the generated method bodies refer to.

    Bodies are the only place these names are evaluated (annotations are lazy), so they
    are bound to aliases that no parameter of the module can shadow.
    """

    deferred_wrapper: str
    stream_wrapper: str
    # None keeps the scope name of the expression as is
    scope: Optional[str] = None


def _free_name(name: str, taken: set[str]) -> str:
    while name in taken:
        name = f"_{name}"
    return name


def body_names(
    wrappers: Sequence[WrapperTypeDescription],
    scope_provider: Optional[ScopeProvider] = None,
    target_module: Optional[str] = None,
) -> BodyNames:
    taken = {param.name for wrapper in wrappers for method in wrapper.methods for param in method.parameters}
    taken.update(param.name for wrapper in wrappers for param in wrapper.constructor.parameters)

    scope = None
    if scope_provider is not None and scope_provider.module and scope_provider.module != target_module:
        scope = _free_name(f"_{scope_provider.name}", taken)
    return BodyNames(
        deferred_wrapper=_free_name(f"_{DEFERRED_WRAPPER.name}", taken),
        stream_wrapper=_free_name(f"_{STREAM_WRAPPER.name}", taken),
        scope=scope,
    )


def format_expression(expr: Expression, wrapper: WrapperTypeDescription, names: BodyNames) -> str:
    if isinstance(expr, DelegateCall):
        field = wrapper.delegate_field
        receiver = field_attribute(expr.receiver, field.private and expr.receiver == field.name)
        return f"self.{receiver}.{expr.method}({format_arguments(expr.arguments)})"
    elif isinstance(expr, DeferredWrap):
        call = format_expression(expr.call, wrapper, names)
        return f"{names.deferred_wrapper}({names.scope or expr.scope}, lambda: {call})"
    elif isinstance(expr, StreamWrap):
        call = format_expression(expr.call, wrapper, names)
        return f"{names.stream_wrapper}({names.scope or expr.scope}, lambda: {call})"
    raise TypeError(f"Unsupported expression: {expr!r}")


def format_docstring(docstring: str, indent: str) -> str:
    lines = docstring.replace('"""', '\\"\\"\\"').splitlines()
    if len(lines) == 1:
        return f'{indent}"""{lines[0]}"""'
    body = "\n".join(f"{indent}{line}" if line else "" for line in lines[1:])
    return f'{indent}"""{lines[0]}\n{body}\n{indent}"""'


def _format_signature(method: MethodDescription, target_module: Optional[str]) -> str:
    params = format_parameters(method.parameters, target_module)
    params_str = f"self, {params}" if params else "self"
    return_str = f" -> {format_type(method.return_type, target_module)}" if method.return_type else ""
    return f"def {method.name}({params_str}){return_str}:"


def _decorators(method: MethodDescription) -> list[str]:
    if Modifier.OVERRIDE in method.modifiers:
        return ["@typing_extensions.override"]
    return []


def emit_method(
    method: MethodDescription, wrapper: WrapperTypeDescription, target_module: Optional[str], names: BodyNames
) -> str:
    lines = [f"{INDENT}{decorator}" for decorator in _decorators(method)]
    lines.append(f"{INDENT}{_format_signature(method, target_module)}")
    if method.docstring:
        lines.append(format_docstring(method.docstring, INDENT * 2))
    lines.append(f"{INDENT * 2}return {format_expression(method.body, wrapper, names)}")
    return "\n".join(lines)


def emit_interface(interface: InterfaceDescription, target_module: Optional[str]) -> str:
    """Render a generated interface as a typing.Protocol."""
    bases = [format_type(supertype, target_module) for supertype in interface.supertypes] + ["typing.Protocol"]
    lines = [f"class {interface.name}({', '.join(bases)}):"]
    if interface.docstring:
        lines.append(format_docstring(interface.docstring, INDENT))
        lines.append("")
    if not interface.methods and not interface.docstring:
        lines.append(f"{INDENT}pass")
    for method in interface.methods:
        lines.append(f"{INDENT}{_format_signature(method, target_module)} ...")
    return "\n".join(lines)


def emit_wrapper(
    wrapper: WrapperTypeDescription, target_module: Optional[str], names: Optional[BodyNames] = None
) -> str:
    """Render a wrapper type as a class delegating to its wrapped instance."""
    if names is None:
        names = body_names([wrapper], target_module=target_module)
    bases = ", ".join(format_type(supertype, target_module) for supertype in wrapper.supertypes)
    lines = [f"class {wrapper.name}({bases}):" if bases else f"class {wrapper.name}:"]
    if wrapper.docstring:
        lines.append(format_docstring(wrapper.docstring, INDENT))
        lines.append("")

    field = wrapper.delegate_field
    ctor_params = format_parameters(wrapper.constructor.parameters, target_module)
    lines.append(f"{INDENT}def __init__(self, {ctor_params}):")
    for name in wrapper.constructor.assigns:
        lines.append(f"{INDENT * 2}self.{field_attribute(name, field.private and name == field.name)} = {name}")
    if not wrapper.constructor.assigns:
        lines.append(f"{INDENT * 2}pass")

    for method in wrapper.methods:
        lines.append("")
        lines.append(emit_method(method, wrapper, target_module, names))
    return "\n".join(lines)


def collect_imports(
    target_module: Optional[str],
    interfaces: Sequence[InterfaceDescription],
    wrappers: Sequence[WrapperTypeDescription],
) -> list[str]:
    modules = {"typing"}
    for interface in interfaces:
        for supertype in interface.supertypes:
            modules.update(_type_modules(supertype))
        for method in interface.methods:
            modules.update(_method_modules(method))
    for wrapper in wrappers:
        for supertype in wrapper.supertypes:
            modules.update(_type_modules(supertype))
        modules.update(_type_modules(wrapper.delegate_field.type))
        for method in wrapper.methods:
            modules.update(_method_modules(method))
            if Modifier.OVERRIDE in method.modifiers:
                modules.add("typing_extensions")
            if isinstance(method.body, DeferredWrap):
                modules.update(_type_modules(DEFERRED_WRAPPER))
            elif isinstance(method.body, StreamWrap):
                modules.update(_type_modules(STREAM_WRAPPER))
    modules.discard(target_module)
    return sorted(modules)


def emit_module(
    target_module: Optional[str],
    interfaces: Sequence[InterfaceDescription],
    wrappers: Sequence[WrapperTypeDescription],
    scope_provider: Optional[ScopeProvider] = None,
) -> str:
    """
    Render generated interfaces and wrappers as the source of one module.

    Args:
        target_module: Name of the module the source is written to
        interfaces: Generated interfaces, emitted first so wrappers can implement them
        wrappers: Wrapper types
        scope_provider: Imported into the module under an alias if it lives elsewhere

    Returns:
        Python source code
    """
    names = body_names(wrappers, scope_provider, target_module)
    bodies = [method.body for wrapper in wrappers for method in wrapper.methods]

    parts = [HEADER + "from __future__ import annotations", ""]
    parts.append("\n".join(f"import {module}" for module in collect_imports(target_module, interfaces, wrappers)))

    aliases = []
    if any(isinstance(body, DeferredWrap) for body in bodies):
        aliases.append(f"from {DEFERRED_WRAPPER.module} import {DEFERRED_WRAPPER.name} as {names.deferred_wrapper}")
    if any(isinstance(body, StreamWrap) for body in bodies):
        aliases.append(f"from {STREAM_WRAPPER.module} import {STREAM_WRAPPER.name} as {names.stream_wrapper}")
    if names.scope is not None:
        aliases.append(f"from {scope_provider.module} import {scope_provider.name} as {names.scope}")
    if aliases:
        parts.append("")
        parts.append("\n".join(aliases))

    for interface in interfaces:
        parts.append("\n")
        parts.append(emit_interface(interface, target_module))
    for wrapper in wrappers:
        parts.append("\n")
        parts.append(emit_wrapper(wrapper, target_module, names))
    return "\n".join(parts) + "\n"
