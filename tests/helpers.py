"""Constants shared by the test modules."""

AUTHOR_ID = "author-1"
