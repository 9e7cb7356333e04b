"""Main entry point for scriptsearch CLI when run as a module."""

from scriptsearch.cli.main import main

if __name__ == "__main__":  # pragma: no cover
    main()
