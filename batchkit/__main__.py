"""Run the batchkit command line: ``python -m batchkit``."""

from batchkit.cli.main import main

if __name__ == "__main__":
    main()
