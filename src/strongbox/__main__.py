"""Allow running strongbox as ``python -m strongbox``."""

from strongbox.cli.app import main

if __name__ == "__main__":
    main()
