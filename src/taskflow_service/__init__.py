"""TaskFlow: gamified task manager with multi-source AI task capture."""

__version__ = "0.1.0"
