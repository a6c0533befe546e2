"""Entry point for `python -m blobcalc`."""

from .terminal import main

if __name__ == "__main__":
    main()
