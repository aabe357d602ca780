"""pipegen: AI-assisted GitHub Actions workflow and template generation."""

__version__ = "0.1.0"

__all__ = ["__version__"]
