"""
BayStars News - collects team news from several sites and turns it
into generated fan-blog articles.
"""

__version__ = "0.1.0"
