"""End to end: compile the wrappers of support_files/repo_impl.py and use them."""

import pytest
import sys
import threading

from suspendwrap.codegen.cli import main
from suspendwrap.codegen.compile import compile_modules
from suspendwrap.runtime import DeferredWrapper, StreamWrapper


@pytest.fixture
def generated_code(repo_impl):
    modules = compile_modules([repo_impl.wrapper_module])
    assert list(modules) == ["repo_wrappers"]
    return modules["repo_wrappers"]


@pytest.fixture
def repo_wrappers(generated_code):
    namespace = {"__name__": "repo_wrappers"}
    exec(compile(generated_code, "repo_wrappers.py", "exec"), namespace)
    return namespace


def test_generated_code_structure(generated_code):
    assert "class NamedWrapper(typing.Protocol):" in generated_code
    assert "class RepoInterface(typing.Protocol):" in generated_code
    assert "class RepoWrapper(NamedWrapper, repo_impl.Closeable, RepoInterface):" in generated_code
    assert "from repo_impl import scope" in generated_code
    assert "_reset" not in generated_code
    assert "async def" not in generated_code


def test_deferred_method(repo_impl, repo_wrappers):
    wrapper = repo_wrappers["RepoWrapper"](repo_impl.Repo())
    deferred = wrapper.fetch("1")
    assert isinstance(deferred, DeferredWrapper)
    assert deferred.result(timeout=5) == repo_impl.User("1", "ada")


def test_deferred_method_error(repo_impl, repo_wrappers):
    wrapper = repo_wrappers["RepoWrapper"](repo_impl.Repo())
    errors = []
    done = threading.Event()

    def on_error(exc):
        errors.append(exc)
        done.set()

    wrapper.fetch("missing").subscribe(lambda user: None, on_error)
    assert done.wait(5)
    assert isinstance(errors[0], KeyError)


def test_streaming_method(repo_impl, repo_wrappers):
    wrapper = repo_wrappers["RepoWrapper"](repo_impl.Repo())
    stream = wrapper.stream_ids(limit=5)
    assert isinstance(stream, StreamWrapper)
    assert list(stream) == ["1", "2"]


def test_direct_methods(repo_impl, repo_wrappers):
    repo = repo_impl.Repo()
    wrapper = repo_wrappers["RepoWrapper"](repo)
    assert wrapper.count() == 2
    assert wrapper.find("2", "3") == [repo_impl.User("2", "grace")]
    with pytest.raises(KeyError):
        wrapper.find("3", strict=True)
    wrapper.close()
    assert repo.closed


def test_wrapper_implements_interfaces(repo_impl, repo_wrappers):
    wrapper = repo_wrappers["RepoWrapper"](repo_impl.Repo())
    # the generated protocols are not runtime checkable, so look at the MRO
    mro = type(wrapper).__mro__
    assert repo_wrappers["RepoInterface"] in mro
    assert repo_wrappers["NamedWrapper"] in mro
    assert repo_impl.Named not in mro
    assert isinstance(wrapper, repo_impl.Closeable)
    assert wrapper.name().result(timeout=5) == "users"


def test_overrides_are_marked(repo_impl, repo_wrappers):
    wrapper_cls = repo_wrappers["RepoWrapper"]
    for name in ["name", "fetch", "stream_ids", "count", "close", "find"]:
        assert getattr(wrapper_cls, name).__override__ is True


def test_cli_prints_modules(support_files, capsys):
    main(["-m", "repo_impl"])
    captured = capsys.readouterr()
    assert captured.out.startswith("# File: repo_wrappers.py")
    assert "class RepoWrapper(" in captured.out
    assert "Found Module: repo_wrappers with 2 items" in captured.err


def test_cli_without_modules(support_files, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["-m", "plain_impl"])
    assert exc_info.value.code == 1
    assert "No Module objects found" in capsys.readouterr().err


def test_cli_import_error(support_files):
    with pytest.raises(ImportError, match="does_not_exist"):
        main(["-m", "does_not_exist"])
    assert "does_not_exist" not in sys.modules


@pytest.mark.parametrize(
    "module_names",
    [["multifile_pkg.a", "multifile_pkg.b"], ["multifile_pkg.b", "multifile_pkg.a"]],
)
def test_cli_module_shared_between_files(support_files, capsys, module_names):
    main([arg for name in module_names for arg in ("-m", name)])
    out = capsys.readouterr().out

    assert out.count("# File: multifile_pkg/wrappers.py") == 1
    assert "class FirstWrapper:" in out
    assert "class SecondWrapper:" in out

    namespace = {"__name__": "multifile_pkg.wrappers"}
    exec(compile(out, "wrappers.py", "exec"), namespace)
    import multifile_pkg.a
    import multifile_pkg.b

    assert namespace["FirstWrapper"](multifile_pkg.a.First()).get().result(timeout=5) == 1
    assert namespace["SecondWrapper"](multifile_pkg.b.Second()).get() == "second"


def test_parameters_named_like_module_globals(support_files):
    import clashing_impl

    code = compile_modules([clashing_impl.wrapper_module])["clashing_wrappers"]
    namespace = {"__name__": "clashing_wrappers"}
    exec(compile(code, "clashing_wrappers.py", "exec"), namespace)

    wrapper = namespace["EchoWrapper"](clashing_impl.Echo())
    assert wrapper.echo("not a scope").result(timeout=5) == "not a scope"
    assert list(wrapper.repeat("x", 2)) == ["x", "x"]
