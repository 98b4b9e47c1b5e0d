"""Allow running suspendwrap.codegen as a module.

This allows the CLI to be invoked as:
    python -m suspendwrap.codegen
"""

from .cli import main

if __name__ == "__main__":
    main()
