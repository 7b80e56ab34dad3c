"""colearner: event model and pluggable message bus for coach/student processes."""

__version__ = "0.1.0"
