"""MentorBook: mentorship session booking service."""

__version__ = "0.1"
