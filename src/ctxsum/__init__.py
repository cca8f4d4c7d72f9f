"""ctxsum - Contextual summaries: token-budgeted semantic profiles for source files."""

__version__ = "0.1.0"
