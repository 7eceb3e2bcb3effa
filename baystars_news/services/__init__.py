"""
Services for BayStars News.
"""
from baystars_news.services.articles import ArticleWriter, sanitize_filename
from baystars_news.services.generation import (
    ContentGenerator,
    LLMContentGenerator,
    template_article,
)
from baystars_news.services.index import IndexAccumulator, JsonIndexStore

__all__ = [
    "ArticleWriter",
    "sanitize_filename",
    "ContentGenerator",
    "LLMContentGenerator",
    "template_article",
    "IndexAccumulator",
    "JsonIndexStore",
]
