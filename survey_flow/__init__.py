"""Survey flow engine: branching questionnaires with AI-routed classifier questions."""

__version__ = "1.0.0"
