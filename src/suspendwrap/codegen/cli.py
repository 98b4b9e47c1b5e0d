#!/usr/bin/env python3
"""
Command line interface for suspendwrap code generation.

Usage:
    python -m suspendwrap.codegen -m <module> [-m <module> ...]
    # Or use the CLI entrypoint:
    suspendwrap -m <module> [-m <module> ...]

The CLI imports the specified modules, which causes their classes to register
with the Module objects they define, then prints the generated wrapper modules.

Examples:
    # Generate wrappers from a single module
    suspendwrap -m my.package._impl > generated.py

    # Generate wrappers from multiple modules
    suspendwrap -m package._a -m package._b > generated.py
"""

import argparse
import importlib
import logging
import subprocess
import sys
import typing
from typing import Optional

from suspendwrap.module import Module

from .compile import compile_modules


def run_ruff(code: str) -> str:
    """
    Run ruff check --fix and ruff format on generated code.

    Args:
        code: The source to format

    Returns:
        The formatted source, or the original source if ruff failed
    """
    for command in (["ruff", "check", "--fix", "--quiet", "-"], ["ruff", "format", "-"]):
        try:
            result = subprocess.run(command, input=code, capture_output=True, text=True)
        except FileNotFoundError:
            print("  ruff not found, leaving output unformatted", file=sys.stderr)
            return code
        if result.returncode != 0 and not result.stdout:
            print(f"  {' '.join(command[:2])} failed: {result.stderr.strip()}", file=sys.stderr)
            return code
        code = result.stdout
    return code


def import_module(module_name: str) -> None:
    """
    Import a module to trigger registration of wrapped classes.

    Args:
        module_name: Qualified module name (e.g., 'my_lib._impl')
    """
    try:
        importlib.import_module(module_name)
    except ImportError as e:
        raise ImportError(f"Could not import module '{module_name}': {e}")


def import_modules_two_pass(module_names: list[str]) -> list:
    """
    Import modules in two passes to handle TYPE_CHECKING imports.

    First pass: Normal import to register wrapped classes
    Second pass: Reload with TYPE_CHECKING=True to make type annotations available

    Args:
        module_names: List of qualified module names to import

    Returns:
        List of imported module objects
    """
    imported_modules = []
    for module_name in module_names:
        print(f"  Importing module: {module_name}", file=sys.stderr)
        import_module(module_name)
        imported_modules.append(sys.modules[module_name])

    # Reloading creates new Module instances holding the reloaded classes,
    # whose annotations can be evaluated
    original_type_checking = typing.TYPE_CHECKING
    try:
        typing.TYPE_CHECKING = True
        for module in imported_modules:
            importlib.reload(module)
    finally:
        typing.TYPE_CHECKING = original_type_checking

    return [sys.modules[module_name] for module_name in module_names]


def find_modules(imported_modules: list) -> list[Module]:
    """Collect the Module objects defined at the top level of imported modules."""
    module_objects = []
    for imported_module in imported_modules:
        for attr_name in dir(imported_module):
            attr = getattr(imported_module, attr_name)
            if isinstance(attr, Module) and attr not in module_objects:
                module_objects.append(attr)
                print(f"  Found Module: {attr.target_module} with {len(attr.module_items())} items", file=sys.stderr)
    return module_objects


def main(argv: Optional[list[str]] = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Generate non-suspending wrappers for classes registered with suspendwrap Modules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print generated modules
  python -m suspendwrap.codegen -m my.package._impl
  suspendwrap -m my.package._impl

  # Generate and format with ruff
  suspendwrap -m my.package._impl --ruff

  # Generate wrappers for multiple modules
  suspendwrap -m package._a -m package._b
        """,
    )
    parser.add_argument(
        "-m",
        "--module",
        action="append",
        dest="modules",
        required=True,
        help="Qualified module name to import (can be specified multiple times)",
    )
    parser.add_argument(
        "--ruff",
        action="store_true",
        help="Run ruff to autofix and format the generated modules",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log details of the compilation to stderr",
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")

    print("Importing modules...", file=sys.stderr)
    module_objects = find_modules(import_modules_two_pass(args.modules))

    if not module_objects:
        print(
            "\nError: No Module objects found in the specified modules.",
            file=sys.stderr,
        )
        print(
            "Make sure you have created a Module instance and decorated your classes with it:",
            file=sys.stderr,
        )
        print("  wrapper_module = Module('my_lib.wrappers', scope_provider='my_lib.scopes.scope')", file=sys.stderr)
        print("  @wrapper_module.wrap_class", file=sys.stderr)
        sys.exit(1)

    # modules with the same target share their registrations
    by_target = {m.target_module: m for m in module_objects}
    total_items = sum(len(m.module_items()) for m in by_target.values())
    print(f"\nTotal registered items: {total_items}", file=sys.stderr)

    print("Compiling wrappers...", file=sys.stderr)
    modules = compile_modules(module_objects)

    if not total_items:
        print("No modules generated", file=sys.stderr)
        sys.exit(1)

    print(f"Generated {len(modules)} module(s)", file=sys.stderr)

    for module_name in sorted(modules.keys()):
        code = modules[module_name]
        if args.ruff:
            code = run_ruff(code)
            print(f"  Formatted: {module_name}", file=sys.stderr)
        module_path = module_name.replace(".", "/") + ".py"
        print(f"# File: {module_path}\n")
        print(code)


if __name__ == "__main__":
    main()
