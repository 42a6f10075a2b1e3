"""
Entry point for running the devstrap CLI as a module.

Usage: python -m devstrap.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
