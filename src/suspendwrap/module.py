"""Module class for build-time registration of classes to wrap.

A Module has no runtime overhead - its decorators return the decorated class
unchanged and only record what the code generator should produce.
"""

import typing
from typing import Optional

from .model import ScopeProvider

C = typing.TypeVar("C", bound=type)


class Module:
    """Build-time registration of classes that get non-suspending wrappers.

    Example:
        ```python
        from suspendwrap import Module

        wrapper_module = Module("my_lib.wrappers", scope_provider="my_lib.scopes.main_scope")

        @wrapper_module.wrap_class(interface="RepositoryInterface")
        class Repository:
            async def fetch(self, id: str) -> User: ...
        ```

    Attributes:
        target_module: The module name where wrapper code will be generated
        scope_provider: The execution scope used by the generated deferred and streaming calls

    Note:
        Registrations are kept at class level, keyed by target module, so that Module
        objects re-created by a reload still see each other's classes. When several
        registrations produce the same name, the most recent one wins.
    """

    # class -> (target module, wrapper name, name of the interface to generate)
    _global_registered_classes: dict[type, tuple[str, str, Optional[str]]] = {}
    # protocol -> (target module, generated interface name)
    _global_registered_interfaces: dict[type, tuple[str, str]] = {}

    def __init__(self, target_module: str, scope_provider: Optional[str] = None):
        """Initialize a Module for wrapper registration.

        Args:
            target_module: The module name where wrapper code will be generated.
            scope_provider: Dotted path of the ExecutionScope instance generated wrappers
                run async calls in, e.g. ``"my_lib.scopes.main_scope"``.

        Raises:
            ValueError: If target_module is empty.
        """
        if not target_module:
            raise ValueError("target_module is required")

        self._target_module = target_module
        self._scope_provider = ScopeProvider.from_path(scope_provider) if scope_provider else None

    @property
    def target_module(self) -> str:
        return self._target_module

    @property
    def scope_provider(self) -> Optional[ScopeProvider]:
        return self._scope_provider

    def registered_classes(self) -> dict[str, tuple[type, Optional[str]]]:
        """Classes registered for this target, by wrapper name."""
        result = {}
        for cls, (target, wrapper_name, interface) in self._global_registered_classes.items():
            if target == self._target_module:
                # later registrations (e.g. from a reload) overwrite earlier ones
                result[wrapper_name] = (cls, interface)
        return result

    def registered_interfaces(self) -> dict[str, type]:
        """Protocols registered for this target, by generated interface name."""
        return {
            name: proto
            for proto, (target, name) in self._global_registered_interfaces.items()
            if target == self._target_module
        }

    def module_items(self) -> dict[str, type]:
        """All registered classes and protocols, by the name generated for them."""
        result = {name: cls for name, (cls, _) in self.registered_classes().items()}
        result.update(self.registered_interfaces())
        return result

    def wrap_class(
        self, cls: Optional[C] = None, *, name: Optional[str] = None, interface: Optional[str] = None
    ) -> typing.Any:
        """Decorator to mark a class for wrapper generation.

        Can be used bare (``@module.wrap_class``) or with arguments.

        Args:
            cls: The class to register.
            name: Name of the wrapper class, ``<ClassName>Wrapper`` by default.
            interface: If given, also generate an interface with this name mirroring the
                wrapper's methods, and make the wrapper implement it.

        Returns:
            The original class, unchanged.
        """

        def decorator(cls: C) -> C:
            wrapper_name = name or f"{cls.__name__}Wrapper"
            self._global_registered_classes[cls] = (self._target_module, wrapper_name, interface)
            return cls

        if cls is not None:
            return decorator(cls)
        return decorator

    def wrap_interface(self, proto: Optional[C] = None, *, name: Optional[str] = None) -> typing.Any:
        """Decorator to mark a protocol for wrapper interface generation.

        Wrappers of classes implementing the protocol implement the generated
        interface instead of the original protocol.

        Args:
            proto: The protocol to register.
            name: Name of the generated interface, ``<ProtocolName>Wrapper`` by default.

        Returns:
            The original protocol, unchanged.
        """

        def decorator(proto: C) -> C:
            self._global_registered_interfaces[proto] = (self._target_module, name or f"{proto.__name__}Wrapper")
            return proto

        if proto is not None:
            return decorator(proto)
        return decorator
