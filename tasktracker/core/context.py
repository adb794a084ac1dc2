from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.engine import Engine

from tasktracker.core.config import Settings
from tasktracker.core.time_utils import utc_now


@dataclass(frozen=True)
class AppContext:
    """Built once in create_app() and stored on app.state.context."""

    settings: Settings
    engine: Engine
    started_at: datetime = field(default_factory=utc_now)
