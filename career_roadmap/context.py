"""Shared resources, built once at startup and passed to the core components."""

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx

from career_roadmap.auth import TokenVerifier, firebase_verifier
from career_roadmap.config import BootstrapConfig, Config
from career_roadmap.providers.gemini import GeminiSettings
from career_roadmap.stores import DocumentStore, create_store

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    gemini: GeminiSettings
    http: httpx.AsyncClient
    store: Optional[DocumentStore]
    app_id: str
    bootstrap: BootstrapConfig = field(default_factory=BootstrapConfig)
    verifier: Optional[TokenVerifier] = None

    async def aclose(self) -> None:
        await self.http.aclose()


def create_context(bootstrap: Optional[BootstrapConfig] = None) -> AppContext:
    """Build the context from Config and the bootstrap values.

    A store that cannot be initialized is logged and left out; the session
    then runs without persistence.
    """
    bootstrap = bootstrap or BootstrapConfig.from_env()

    for problem in Config.validate():
        logger.warning("Configuration: %s", problem)

    store: Optional[DocumentStore] = None
    verifier: Optional[TokenVerifier] = None
    try:
        store = create_store(Config.STORE_BACKEND, bootstrap.effective_store_config())
    except Exception:
        logger.exception("Could not initialize '%s' document store, plans will not be saved", Config.STORE_BACKEND)

    if bootstrap.identity_token:
        try:
            from career_roadmap.stores.firestore_store import get_firebase_app
            verifier = firebase_verifier(get_firebase_app(bootstrap.effective_store_config()))
        except Exception:
            logger.exception("Could not initialize Firebase Auth, falling back to anonymous identity")

    settings = GeminiSettings.from_config()
    return AppContext(
        gemini=settings,
        http=httpx.AsyncClient(timeout=settings.timeout),
        store=store,
        app_id=Config.APP_ID,
        bootstrap=bootstrap,
        verifier=verifier,
    )
