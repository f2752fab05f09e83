"""Career Assist API: LLM-backed resume, interview and writing assistance."""

__version__ = "0.1.0"
