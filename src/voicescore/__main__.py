"""Allow ``python -m voicescore``."""

from .cli import main

if __name__ == "__main__":
    main()
