"""Allow ``python -m mailcraft``."""

from mailcraft.cli.app import main

if __name__ == "__main__":  # pragma: no cover - entry point
    main()
