"""
HEMSAEUCC - Entry point for ``python -m hemsaeucc``.
"""

from .main import main

if __name__ == "__main__":
    main()
