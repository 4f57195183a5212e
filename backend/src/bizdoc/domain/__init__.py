"""
Domain package - Core analysis records and scoring rules.

Pure Python with no external dependencies. Everything here is deterministic
so the same text always produces the same analysis.
"""
