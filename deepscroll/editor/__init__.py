"""Edit buffer, undo history, annotation tools and export."""

from deepscroll.editor.buffer import EditBuffer
from deepscroll.editor.history import HistorySnapshot, HistoryStack, HistoryState
from deepscroll.editor.session import (
    EditorCommand,
    EditorSession,
    ExportCommand,
    PendingText,
    RedoCommand,
    UndoCommand,
)

__all__ = [
    "EditBuffer",
    "EditorCommand",
    "EditorSession",
    "ExportCommand",
    "HistorySnapshot",
    "HistoryStack",
    "HistoryState",
    "PendingText",
    "RedoCommand",
    "UndoCommand",
]
