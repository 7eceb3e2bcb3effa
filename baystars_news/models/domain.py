"""
Domain models for generated articles.
"""
from pydantic import BaseModel


class ArticleMetadata(BaseModel):
    """Metadata for one generated article, as stored in the index."""
    title: str
    date: str  # YYYY-MM-DD
    filename: str
    filepath: str
