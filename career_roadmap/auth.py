"""Resolves the opaque user identity the session persists under."""

import logging
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from firebase_admin import auth as firebase_auth

logger = logging.getLogger(__name__)

TokenVerifier = Callable[[str], Dict[str, Any]]


def anonymous_identity(id_file: Optional[Path] = None) -> str:
    """Anonymous identity, stable across restarts when id_file is given.

    The identity is read from id_file, or created and written there on first
    use. Without a file every call returns a fresh identity.
    """
    if id_file is None:
        return f"anon-{uuid.uuid4().hex}"

    id_file = Path(id_file)
    try:
        existing = id_file.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        existing = ""
    except OSError as e:
        logger.warning("Could not read anonymous identity from %s: %s", id_file, e)
        existing = ""
    if existing:
        return existing

    identity = f"anon-{uuid.uuid4().hex}"
    try:
        id_file.write_text(identity + "\n", encoding="utf-8")
    except OSError as e:
        logger.warning("Could not save anonymous identity to %s, it will change on restart: %s", id_file, e)
    return identity


def firebase_verifier(app: Any) -> TokenVerifier:
    """Verifier backed by Firebase Auth for the given app.

    Only ID tokens are accepted. A custom token has a different audience and
    issuer, so verify_id_token rejects it.
    """
    def verify(token: str) -> Dict[str, Any]:
        return firebase_auth.verify_id_token(token, app=app)
    return verify


def resolve_identity(identity_token: Optional[str],
                     verifier: Optional[TokenVerifier] = None,
                     require_auth: bool = False,
                     anonymous_id: Optional[str] = None,
                     anonymous_id_file: Optional[Path] = None) -> Optional[str]:
    """Turn the bootstrap token into an identity.

    Args:
        identity_token: Pre-issued Firebase ID token from the hosting environment
        verifier: Decodes a token into claims; must return a "uid" claim
        require_auth: If set, a missing or rejected token yields no identity
            instead of an anonymous one
        anonymous_id: Fixed anonymous identity, used as is when set
        anonymous_id_file: Where a generated anonymous identity is kept

    Returns:
        The identity string, or None when the session must run without persistence
    """
    if identity_token and verifier is not None:
        try:
            claims = verifier(identity_token)
            uid = claims.get("uid") or claims.get("sub")
            if uid:
                logger.info("Signed in with identity token")
                return str(uid)
            logger.warning("Identity token has no uid claim")
        except Exception as e:
            logger.error("Identity token verification failed (an ID token is required): %s", e)
    elif identity_token:
        logger.warning("Identity token supplied but no verifier is available")

    if require_auth:
        logger.warning("Authentication required and no verified identity, persistence disabled")
        return None

    identity = anonymous_id or anonymous_identity(anonymous_id_file)
    logger.info("Signed in anonymously as %s", identity)
    return identity
