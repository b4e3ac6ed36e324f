"""Top-level package for Voicecast.

Voicecast turns long text into synthesized speech and orchestrates multi-phase
AI generation of long-form podcast scripts and audio. The HTTP entry point is
`create_app`; the CLI lives in `voicecast.cli`.
"""

__version__ = "0.3.0"

from .api.app import create_app

__all__ = ["create_app", "__version__"]
