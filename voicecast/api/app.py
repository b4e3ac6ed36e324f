"""FastAPI application factory.

Responsibilities:
- Build services from configuration and attach them to application state.
- Register routers and exception handlers.
- Cancel in-flight background runs on shutdown.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import os
from typing import AsyncIterator

from fastapi import FastAPI
from loguru import logger

from .. import __version__
from ..audio.library import AudioLibrary
from ..audio.storage import AudioStore
from ..config import ProviderApiKeys, RuntimeConfigSources, VoicecastConfig
from ..pipeline.executor import PipelineExecutor
from ..providers.factory import ProviderFactory, ProviderSet
from ..services.assistant import AssistantService
from ..services.podcast import PodcastProjectManager
from ..services.speech import TextToSpeechService
from .handlers import register_exception_handlers
from .routes import assistant, audio, health, library, podcast, speech


def create_app(
    config: VoicecastConfig | None = None,
    providers: ProviderSet | None = None,
    *,
    api_keys: ProviderApiKeys | None = None,
) -> FastAPI:
    """Create the Voicecast application.

    Args:
        config: Validated runtime configuration; defaults are used when omitted.
        providers: Capability clients; built from configuration when omitted.
        api_keys: Resolved provider keys; environment variables are used when omitted.
    """

    config = config or VoicecastConfig()
    config.validate()
    if providers is None:
        keys = api_keys or config.resolve_api_keys(RuntimeConfigSources(env=dict(os.environ)))
        providers = ProviderFactory.create_set(config, keys)

    store = AudioStore(config.content_dir, config.audio_url_prefix)
    executor = PipelineExecutor()
    audio_library = AudioLibrary()
    speech_service = TextToSpeechService(
        config=config,
        providers=providers,
        store=store,
        library=audio_library,
        executor=executor,
    )
    podcast_manager = PodcastProjectManager(
        config=config,
        providers=providers,
        store=store,
        executor=executor,
    )
    assistant_service = AssistantService(config=config, providers=providers, store=store)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        store.ensure_root()
        logger.info("Voicecast {} serving audio from {}.", __version__, store.root)
        yield
        if executor.active_count:
            logger.info("Canceling {} active run(s) on shutdown.", executor.active_count)
        await executor.shutdown()

    app = FastAPI(title="Voicecast API", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.store = store
    app.state.executor = executor
    app.state.library = audio_library
    app.state.speech = speech_service
    app.state.podcasts = podcast_manager
    app.state.assistant = assistant_service

    register_exception_handlers(app)
    app.include_router(health.router)
    app.include_router(speech.router)
    app.include_router(audio.router, prefix=config.audio_url_prefix)
    app.include_router(library.router)
    app.include_router(podcast.router)
    app.include_router(assistant.router)
    return app
