import pytest

from suspendwrap.codegen.adapter import (
    DEFERRED_WRAPPER,
    STREAM_WRAPPER,
    adapt_method,
    build_invocation,
    stream_element_type,
)
from suspendwrap.exceptions import MissingScopeProviderError, SuspendWrapError
from suspendwrap.model import (
    CallingConvention,
    DeferredWrap,
    DelegateCall,
    GeneratedInterfaceBinding,
    MethodDescription,
    Modifier,
    Parameter,
    ScopeProvider,
    StreamWrap,
    TypeReference,
)

STR = TypeReference("str")
INT = TypeReference("int")
USER = TypeReference("User", "app.models")
SCOPE = ScopeProvider("scope", "app.scopes")


@pytest.fixture
def direct_method():
    return MethodDescription(
        name="lookup",
        parameters=(Parameter("key", STR), Parameter("limit", INT)),
        return_type=USER,
    )


@pytest.fixture
def deferred_method():
    return MethodDescription(
        name="fetch",
        parameters=(Parameter("id", STR),),
        return_type=USER,
        calling_convention=CallingConvention.DEFERRED,
        modifiers=frozenset({Modifier.SUSPEND}),
    )


@pytest.fixture
def streaming_method():
    return MethodDescription(
        name="watch",
        parameters=(Parameter("prefix", STR),),
        return_type=TypeReference("AsyncGenerator", "collections.abc", (USER, TypeReference("None"))),
        calling_convention=CallingConvention.STREAMING,
    )


def test_direct_body_is_the_delegating_call(direct_method):
    adapted = adapt_method(direct_method, SCOPE)
    assert adapted.body == DelegateCall("wrapped", "lookup", direct_method.parameters)
    assert [param.name for param in adapted.body.arguments] == ["key", "limit"]
    assert adapted.return_type == USER
    assert adapted.calling_convention is CallingConvention.DIRECT


def test_direct_method_without_scope(direct_method):
    adapted = adapt_method(direct_method, None)
    assert adapted.body == build_invocation(direct_method)


def test_deferred_body_wraps_call_once(deferred_method):
    adapted = adapt_method(deferred_method, SCOPE)
    assert adapted.body == DeferredWrap(scope="scope", call=DelegateCall("wrapped", "fetch", (Parameter("id", STR),)))
    assert adapted.calling_convention is CallingConvention.DIRECT
    assert Modifier.SUSPEND not in adapted.modifiers
    assert adapted.return_type == TypeReference(DEFERRED_WRAPPER.name, DEFERRED_WRAPPER.module, (USER,))


def test_deferred_without_return_type():
    method = MethodDescription("ping", calling_convention=CallingConvention.DEFERRED)
    assert adapt_method(method, SCOPE).return_type == DEFERRED_WRAPPER


def test_streaming_body_wraps_call_once(streaming_method):
    adapted = adapt_method(streaming_method, SCOPE)
    assert adapted.body == StreamWrap(scope="scope", call=build_invocation(streaming_method))
    assert adapted.calling_convention is CallingConvention.DIRECT
    assert adapted.return_type == TypeReference(STREAM_WRAPPER.name, STREAM_WRAPPER.module, (USER,))


def test_stream_element_type():
    assert stream_element_type(TypeReference("AsyncIterator", "collections.abc", (INT,))) == INT
    assert stream_element_type(TypeReference("AsyncIterator", "collections.abc")) is None
    assert stream_element_type(TypeReference("list", None, (INT,))) is None
    assert stream_element_type(None) is None


def test_streaming_without_element_type():
    method = MethodDescription("events", calling_convention=CallingConvention.STREAMING)
    assert adapt_method(method, SCOPE).return_type == STREAM_WRAPPER


def test_custom_delegate_field(deferred_method):
    adapted = adapt_method(deferred_method, SCOPE, delegate_field="inner")
    assert adapted.body.call.receiver == "inner"


@pytest.mark.parametrize("method_fixture", ["deferred_method", "streaming_method"])
def test_missing_scope_provider_fails_fast(request, method_fixture):
    method = request.getfixturevalue(method_fixture)
    with pytest.raises(MissingScopeProviderError) as exc_info:
        adapt_method(method, None, class_name="Repo")
    assert isinstance(exc_info.value, SuspendWrapError)
    assert exc_info.value.method_name == method.name
    assert f"Repo.{method.name}" in str(exc_info.value)


def test_existing_override_is_preserved(direct_method):
    method = MethodDescription("close", modifiers=frozenset({Modifier.OVERRIDE}))
    assert adapt_method(method, None).modifiers == frozenset({Modifier.OVERRIDE})
    assert adapt_method(direct_method, None).modifiers == frozenset()


def test_override_added_for_generated_interface(deferred_method, direct_method):
    interface = GeneratedInterfaceBinding(
        type=TypeReference("RepoInterface", "app.wrappers"),
        methods=(MethodDescription("fetch", parameters=(Parameter("id", STR),)),),
    )
    assert adapt_method(deferred_method, SCOPE, interface).modifiers == frozenset({Modifier.OVERRIDE})
    assert adapt_method(direct_method, SCOPE, interface).modifiers == frozenset()
