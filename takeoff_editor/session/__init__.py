"""
Edit session subsystem: undoable edits, crash-recovery drafts and commits.

Re-exports the key classes so consumers can write:
    from takeoff_editor.session import EditSession, DraftStore, HttpCommitBackend
"""

from takeoff_editor.session.commit import (
    CommitBackend,
    CommitResult,
    HttpCommitBackend,
    InMemoryCommitBackend,
)
from takeoff_editor.session.draft_store import Draft, DraftStore
from takeoff_editor.session.edit_session import EditSession, SessionState
from takeoff_editor.session.records import EditKind, EditRecord

__all__ = [
    "CommitBackend",
    "CommitResult",
    "HttpCommitBackend",
    "InMemoryCommitBackend",
    "Draft",
    "DraftStore",
    "EditSession",
    "SessionState",
    "EditKind",
    "EditRecord",
]
