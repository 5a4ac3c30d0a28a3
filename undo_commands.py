"""
undo_commands.py — QUndoCommand subclasses for the undo/redo stack.

Every command drives the EditorSession, never the scene items, so undo and
redo go through the same clamping and id rules as a direct edit.

Commands implemented:
  AddBubbleCommand    — redo = add (or restore the same id), undo = remove
  RemoveBubbleCommand — redo = remove, undo = restore at the old index
  UpdateFieldCommand  — redo = new value, undo = old value
                        (consecutive edits of one field of one bubble merge)
  MoveBubbleCommand   — redo = new position, undo = old position
                        (nudges of one held arrow key merge)
  ReorderCommand      — bring to front / send to back, undo restores z-order
  ReplaceAllCommand   — suggestion batch in, undo brings the old list back
"""

from PyQt6.QtGui import QUndoCommand

from bubble_model import Position


class AddBubbleCommand(QUndoCommand):
    def __init__(self, session, partial: dict | None = None):
        super().__init__("Add Bubble")
        self._session  = session
        self._partial  = dict(partial or {})
        self._snapshot = None   # descriptor after the first redo
        self.bubble_id: int | None = None

    def redo(self):
        if self._snapshot is None:
            self.bubble_id = self._session.add_bubble(self._partial)
            self._snapshot = self._session.model.get(self.bubble_id)
        else:
            self._session.restore(self._snapshot)
            self._session.select(self.bubble_id)

    def undo(self):
        if self.bubble_id not in self._session.model:
            return
        self._snapshot = self._session.model.get(self.bubble_id)
        self._session.remove(self.bubble_id)


class DuplicateBubbleCommand(AddBubbleCommand):
    def __init__(self, session, source_id: int):
        super().__init__(session)
        self.setText("Duplicate Bubble")
        self._source_id = source_id

    def redo(self):
        if self._snapshot is None:
            self.bubble_id = self._session.duplicate(self._source_id)
            if self.bubble_id is None:
                self.setObsolete(True)
                return
            self._snapshot = self._session.model.get(self.bubble_id)
        else:
            self._session.restore(self._snapshot)
            self._session.select(self.bubble_id)

    def undo(self):
        if self.bubble_id is not None:
            super().undo()


class RemoveBubbleCommand(QUndoCommand):
    def __init__(self, session, bubble_id: int):
        super().__init__("Delete Bubble")
        self._session   = session
        self._bubble_id = bubble_id
        self._desc  = session.model.get(bubble_id)
        self._index = session.model.index_of(bubble_id)

    def redo(self):
        self._session.remove(self._bubble_id)

    def undo(self):
        if self._bubble_id in self._session.model:
            return
        self._session.restore(self._desc, self._index)
        self._session.select(self._bubble_id)


_UNSET = object()


class UpdateFieldCommand(QUndoCommand):
    # Shared id so Qt can merge consecutive slider steps
    _ID = 42

    def __init__(self, session, bubble_id: int, field: str, new_value,
                 old_value=_UNSET):
        """old_value: pass it when the edit was already applied live
        (e.g. during a tail drag); otherwise it is read from the model."""
        super().__init__(f"Change {field.replace('_', ' ')}")
        self._session   = session
        self._bubble_id = bubble_id
        self._field     = field
        if old_value is _UNSET:
            old_value = getattr(session.model.get(bubble_id), field)
        self._old_value = old_value
        self._new_value = new_value

    def id(self) -> int:
        return self._ID

    def mergeWith(self, other: QUndoCommand) -> bool:
        """Merge a later edit of the same field — keeps only first→last."""
        if (isinstance(other, UpdateFieldCommand)
                and other._bubble_id == self._bubble_id
                and other._field == self._field):
            self._new_value = other._new_value
            return True
        return False

    def redo(self):
        self._session.update(self._bubble_id, self._field, self._new_value)

    def undo(self):
        self._session.update(self._bubble_id, self._field, self._old_value)


class MoveBubbleCommand(QUndoCommand):
    """Records a finished drag or nudge; the bubble has already moved.

    Only moves sharing a burst id (one held arrow key) merge; a drag passes
    no burst and always stays its own undo step.
    """
    _ID = 43

    def __init__(self, session, bubble_id: int,
                 old_pos: Position, new_pos: Position, burst: int | None = None):
        super().__init__("Move Bubble")
        self._session   = session
        self._bubble_id = bubble_id
        self._old_pos   = Position(*old_pos)
        self._new_pos   = Position(*new_pos)
        self._burst     = burst

    def id(self) -> int:
        return self._ID

    def mergeWith(self, other: QUndoCommand) -> bool:
        if (isinstance(other, MoveBubbleCommand)
                and self._burst is not None
                and other._burst == self._burst
                and other._bubble_id == self._bubble_id):
            self._new_pos = other._new_pos
            return True
        return False

    def redo(self):
        self._session.update(self._bubble_id, "position", self._new_pos)

    def undo(self):
        self._session.update(self._bubble_id, "position", self._old_pos)


class ReorderCommand(QUndoCommand):
    def __init__(self, session, bubble_id: int, to_front: bool):
        super().__init__("Bring to Front" if to_front else "Send to Back")
        self._session   = session
        self._bubble_id = bubble_id
        self._to_front  = to_front
        self._old_z     = session.model.get(bubble_id).z_order

    def redo(self):
        if self._to_front:
            self._session.bring_to_front(self._bubble_id)
        else:
            self._session.send_to_back(self._bubble_id)

    def undo(self):
        self._session.update(self._bubble_id, "z_order", self._old_z)


class ReplaceAllCommand(QUndoCommand):
    def __init__(self, session, records: list[dict]):
        super().__init__("Apply Suggestions")
        self._session     = session
        self._records     = [dict(r) for r in records]
        self._before      = session.model.descriptors()
        self._mode_before = session.mode_state()
        self._after       = None
        self._mode_after  = None

    def redo(self):
        if self._after is None:
            self._session.apply_suggestions(self._records)
            self._after = self._session.model.descriptors()
            self._mode_after = self._session.mode_state()
        else:
            self._session.model.restore_all(self._after)
            self._session.restore_mode_state(self._mode_after)

    def undo(self):
        self._session.model.restore_all(self._before)
        self._session.restore_mode_state(self._mode_before)
