"""
Analysis engines package.

Contains the static header/metadata readers, the crawler and grouping
engine, and crawl session management.
"""
