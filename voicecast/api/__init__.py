"""HTTP surface of Voicecast built on FastAPI."""
