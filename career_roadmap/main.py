"""FastAPI backend for the career roadmap coach."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from career_roadmap.auth import resolve_identity
from career_roadmap.config import Config
from career_roadmap.context import create_context
from career_roadmap.providers.gemini import GeminiClient
from career_roadmap.state import ChatStatus, Phase, PlanSession
from career_roadmap.sync import PlanSync

logger = logging.getLogger(__name__)

SessionFactory = Callable[[FastAPI], Awaitable[PlanSession]]

# How long startup waits for the saved plan before serving
BOOTSTRAP_WAIT_SECONDS = 10.0


# Request models
class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    interest: Optional[str] = None
    goal: Optional[str] = None


class ChatRequest(BaseModel):
    message: str


async def default_session(app: FastAPI) -> PlanSession:
    """Wire the session from environment configuration."""
    context = create_context()
    app.state.context = context

    client = GeminiClient(context.gemini, context.http)
    sync = PlanSync(context.store, context.app_id)
    session = PlanSession(client, sync)

    identity = resolve_identity(
        context.bootstrap.identity_token,
        context.verifier,
        Config.REQUIRE_AUTH,
        anonymous_id=Config.ANONYMOUS_ID,
        anonymous_id_file=Config.ANONYMOUS_ID_FILE,
    )
    session.attach_identity(identity)
    if not await session.wait_until_loaded(BOOTSTRAP_WAIT_SECONDS):
        logger.warning("Saved plan not received within %.0fs, starting with an empty session", BOOTSTRAP_WAIT_SECONDS)
    return session


def create_app(session_factory: Optional[SessionFactory] = None) -> FastAPI:
    factory = session_factory or default_session

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.session = await factory(app)
        logger.info("Session ready (phase=%s)", app.state.session.phase.value)
        try:
            yield
        finally:
            await app.state.session.close()
            context = getattr(app.state, "context", None)
            if context is not None:
                await context.aclose()

    app = FastAPI(title="Career Roadmap Coach", lifespan=lifespan)

    # CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_session(request: Request) -> PlanSession:
        return request.app.state.session

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "service": "career-roadmap-coach",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/session")
    async def session_state(request: Request):
        """Everything a UI needs to render the current phase."""
        return get_session(request).snapshot()

    @app.put("/session/profile")
    async def update_profile(update: ProfileUpdate, request: Request):
        session = get_session(request)
        if not session.update_profile(update.name, update.interest, update.goal):
            raise HTTPException(status_code=409, detail=f"Profile cannot be edited while {session.phase.value}")
        return session.snapshot()

    @app.post("/session/plan")
    async def build_plan(request: Request):
        """Generate a roadmap for the current profile."""
        session = get_session(request)
        if session.phase is not Phase.COLLECTING_INPUT:
            raise HTTPException(status_code=409, detail=f"Cannot build a plan while {session.phase.value}")
        if not session.profile.is_complete():
            raise HTTPException(status_code=409, detail="Name and interest are required")

        if not await session.build_plan():
            raise HTTPException(status_code=502, detail=session.last_error or "Plan generation was superseded")
        return session.snapshot()

    @app.post("/session/edit")
    async def edit(request: Request):
        session = get_session(request)
        if not session.edit():
            raise HTTPException(status_code=409, detail=f"Nothing to edit while {session.phase.value}")
        return session.snapshot()

    @app.post("/session/chat")
    async def chat(chat_request: ChatRequest, request: Request):
        """Send message to the mentor and get response."""
        session = get_session(request)
        if session.chat_status is ChatStatus.AWAITING_REPLY:
            raise HTTPException(status_code=409, detail="A reply is still pending")
        if not await session.send_chat(chat_request.message):
            raise HTTPException(status_code=409, detail="Chat needs a plan under review and a non-empty message")

        history = session.get_history()
        return {
            "response": history[-1]["text"] if history else "",
            "history": history,
        }

    @app.get("/session/transcript")
    async def transcript(request: Request):
        """Get mentor conversation history."""
        return {"history": get_session(request).get_history()}

    return app


app = create_app()


if __name__ == "__main__":
    from career_roadmap.run_server import main
    main()
