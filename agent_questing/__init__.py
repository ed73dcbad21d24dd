"""Quest assignment, objective selection and static path caching for agents."""

__version__ = "0.1.0"
