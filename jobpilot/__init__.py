"""Browser-driven job applications screened by an LLM."""

__version__ = "0.1.0"
