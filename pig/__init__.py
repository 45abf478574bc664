"""pig: render Jinja2 templates from a fully resolved OpenAPI 3.0.x document."""

__version__ = "0.1.0"
