"""kalam - authoring and reading services for a bilingual personal blog."""

__version__ = "0.1.0"
