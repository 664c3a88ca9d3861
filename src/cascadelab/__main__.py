"""Entry point for ``python -m cascadelab``."""

from cascadelab.cli import main

if __name__ == "__main__":
    main()
