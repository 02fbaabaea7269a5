"""
LexiMemo: spaced repetition for words and sentences.

See leximemo.review for the scheduling engine.
"""

__version__ = "1.0.0"
