"""
Entry point for running the relayer as a module.

Usage:
    python -m gasless_relayer
"""

from gasless_relayer.cli import main

if __name__ == "__main__":
    main()
