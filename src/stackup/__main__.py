"""Allow running stackup with `python -m stackup`."""

from stackup.cli import main

if __name__ == "__main__":
    main()
