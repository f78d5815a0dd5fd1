"""dusk-skills: package prompt and skill documents into one output tree."""

__version__ = "0.3.0"
