"""Module entrypoint for running Voicecast as ``python -m voicecast``."""

from __future__ import annotations

from voicecast.cli import main


if __name__ == "__main__":
    main()
