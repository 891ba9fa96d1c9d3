from typing import Optional

from fastapi import Depends, Header
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from .db import get_db, store_guard
from .errors import Forbidden
from .models import User

SUPERVISOR_ROLES = ("admin", "manager")


def add_cors(app, origins=None):
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def current_viewer(
    x_viewer_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Resolve the viewer from the id the upstream auth layer forwards.
    Unknown or missing ids browse anonymously.
    """
    if not x_viewer_id:
        return None
    with store_guard("resolve viewer"):
        return db.get(User, x_viewer_id.strip())


def require_supervisor(viewer: Optional[User] = Depends(current_viewer)) -> User:
    if viewer is None or viewer.role not in SUPERVISOR_ROLES:
        raise Forbidden("Forbidden")
    return viewer
