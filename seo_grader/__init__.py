"""SEO Grader: single-page SEO, performance, social and technical audit."""

__version__ = "1.0.0"
