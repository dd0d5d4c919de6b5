"""Undo/redo engines, undone-state tracking and the undo service.

Example:
    from backstep.undo import FileBackupStore, LogOperationSource, UndoService, UndoStateTracker

    tracker = UndoStateTracker(state_file)
    service = UndoService(LogOperationSource(log_path, tracker), FileBackupStore(backup_dir))
    report = service.undo(service.plan_cascade(service.list_active(), 0))
"""

from backstep.undo.backups import (
    BackupKey,
    BackupPurpose,
    BackupStore,
    FileBackupStore,
    MemoryBackupStore,
)
from backstep.undo.cascade import plan_cascade
from backstep.undo.engine import ApplyForwardEngine, ReversalEngine
from backstep.undo.handlers import HandlerRegistry, KindHandler, StepOutcome, default_registry
from backstep.undo.manager import UndoService
from backstep.undo.models import CascadeReport, Direction, OperationResult
from backstep.undo.preview import OperationPreview, Preview
from backstep.undo.sources import (
    LocalSessionSource,
    LogOperationSource,
    OperationSource,
)
from backstep.undo.tracker import UndoStateTracker

__all__ = [
    "ApplyForwardEngine",
    "BackupKey",
    "BackupPurpose",
    "BackupStore",
    "CascadeReport",
    "Direction",
    "FileBackupStore",
    "HandlerRegistry",
    "KindHandler",
    "LocalSessionSource",
    "LogOperationSource",
    "MemoryBackupStore",
    "OperationPreview",
    "OperationResult",
    "OperationSource",
    "Preview",
    "ReversalEngine",
    "StepOutcome",
    "UndoService",
    "UndoStateTracker",
    "default_registry",
    "plan_cascade",
]
