"""
Batch jobs for BayStars News.
"""
from baystars_news.jobs.pipeline import (
    ArticleGenerationJob,
    run_fetch,
    run_generate,
    run_pipeline,
)

__all__ = [
    "ArticleGenerationJob",
    "run_fetch",
    "run_generate",
    "run_pipeline",
]
