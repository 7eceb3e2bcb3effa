from baystars_news.models.domain import ArticleMetadata

__all__ = ["ArticleMetadata"]
