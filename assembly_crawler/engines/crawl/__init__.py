"""Directory crawling, entity model and duplicate grouping."""
