"""
Reversible edit records for the session's undo/redo log.

Each record stores the affected detections before and after the edit, keyed
by id. None on either side means the detection did not exist on that side
(created or removed). Undo writes the "before" side back, redo the "after"
side, so records never need operation-specific inverse logic.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from takeoff_editor.domain.models import Detection, utcnow


class EditKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    MOVE = "move"
    RESIZE = "resize"
    VERTEX = "vertex"
    RECLASSIFY = "reclassify"
    STATUS = "status"
    DELETE = "delete"
    SPLIT = "split"
    MATERIAL = "material"


@dataclass
class EditRecord:
    """One reversible mutation of the detection set."""
    kind: EditKind
    before: dict[str, Optional[Detection]]
    after: dict[str, Optional[Detection]]
    description: str = ""
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def detection_ids(self) -> list[str]:
        return list(self.after.keys())
