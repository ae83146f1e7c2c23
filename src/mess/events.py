"""
Things that happened during an operation.

The Game collects them while it mutates; the Service publishes them (chat log + AI commentary) after the state was saved.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from src.core.shared_types import EventKind


@dataclass
class GameEvent:
    kind: EventKind
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    # context handed to the commentator. None means: no commentary for this event
    commentary: Optional[dict[str, Any]] = None
