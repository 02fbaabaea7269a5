"""
Entry point for running LexiMemo as a module.

Usage:
    python -m leximemo review
    python -m leximemo stats
    python -m leximemo --help
"""
from .review.cli import main

if __name__ == "__main__":
    main()
