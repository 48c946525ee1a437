"""Rubric scoring engine for guided investment decision questionnaires."""

__version__ = "1.0.0"
