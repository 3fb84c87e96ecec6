"""depgraph: static import dependency analysis for JavaScript/TypeScript source trees."""

__version__ = "0.1.0"
