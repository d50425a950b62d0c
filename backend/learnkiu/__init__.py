"""LearnKIU: text-to-quiz assessments with KIU-scored PDF certificates."""

__version__ = "0.1.0"
