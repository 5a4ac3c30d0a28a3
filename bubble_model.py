"""
bubble_model.py — BubbleModel: the ordered collection of bubble descriptors.

Every edit to a page's bubbles goes through this class so the invariants hold
after each step:

  * positions are always inside [0, 100] x [0, 100]
  * scale, font size and tail length are clamped, never rejected
  * tail angles are stored normalized to [0, 360)
  * ids are assigned here, increase monotonically and are never reused

The model knows nothing about Qt.  The scene subscribes to it and repaints
from snapshot() whenever a mutation happens.
"""

import copy
import logging
import math
from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Iterable, Mapping, NamedTuple

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SHAPE_KINDS = (
    "speech", "thought", "scream", "narrative", "whisper",
    "wavy", "impact", "organic", "sharp", "modern",
)
DEFAULT_SHAPE = "speech"

POS_MIN, POS_MAX         = 0.0, 100.0
SCALE_MIN, SCALE_MAX     = 5.0, 98.0
FONT_MIN, FONT_MAX       = 8, 72
TAIL_LEN_MIN, TAIL_LEN_MAX = 0.0, 400.0

DEFAULT_POSITION  = (50.0, 50.0)
DEFAULT_SCALE     = 35.0
DEFAULT_FONT_SIZE = 16
DUPLICATE_OFFSET  = (3.0, 3.0)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class BubbleModelError(Exception):
    """Base class for recoverable model errors."""


class NotFound(BubbleModelError, KeyError):
    """The bubble id is not (or no longer) in the collection."""

    def __init__(self, bubble_id):
        super().__init__(bubble_id)
        self.bubble_id = bubble_id

    def __str__(self):
        return f"no bubble with id {self.bubble_id!r}"


class InvalidShape(BubbleModelError, ValueError):
    """A shape kind outside SHAPE_KINDS was requested."""

    def __init__(self, kind):
        super().__init__(kind)
        self.kind = kind

    def __str__(self):
        return f"unknown shape kind {self.kind!r}"


class UnknownField(BubbleModelError, KeyError):
    """The field name has no setter in FIELD_SETTERS."""

    def __init__(self, name):
        super().__init__(name)
        self.name = name

    def __str__(self):
        return f"bubble descriptors have no writable field {self.name!r}"


class InvalidValue(BubbleModelError, ValueError):
    """A numeric field was given NaN, or infinity where no bound applies."""

    def __init__(self, name, value):
        super().__init__(name, value)
        self.name  = name
        self.value = value

    def __str__(self):
        return f"{self.value!r} is not a usable value for {self.name}"


# ---------------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------------

class Position(NamedTuple):
    x: float
    y: float


@dataclass
class BubbleDescriptor:
    """One dialogue or narration element on the page."""

    id:            int
    text:          str      = ""
    position:      Position = Position(*DEFAULT_POSITION)
    scale:         float    = DEFAULT_SCALE
    shape_kind:    str      = DEFAULT_SHAPE
    font_size:     int      = DEFAULT_FONT_SIZE
    tail_angle:    int      = 0
    tail_length:   float    = 0.0
    show_tail:     bool     = True
    z_order:       int      = 0
    reading_order: int      = 0
    description:   str      = ""
    panel_number:  int      = 0

    @property
    def has_tail(self) -> bool:
        return self.show_tail and self.tail_length > 0


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _number(value, name: str) -> float:
    # +/-inf survive for clamping; NaN has no place in any range
    num = float(value)
    if math.isnan(num):
        raise InvalidValue(name, value)
    return num


# ---------------------------------------------------------------------------
# Field setter table: name -> validator returning the value to store
# ---------------------------------------------------------------------------

def _set_text(value) -> str:
    return "" if value is None else str(value)


def _set_position(value) -> Position:
    if isinstance(value, Mapping):
        x, y = value["x"], value["y"]
    else:
        x, y = value
    return Position(_clamp(_number(x, "position"), POS_MIN, POS_MAX),
                    _clamp(_number(y, "position"), POS_MIN, POS_MAX))


def _set_scale(value) -> float:
    return _clamp(_number(value, "scale"), SCALE_MIN, SCALE_MAX)


def _set_shape_kind(value) -> str:
    kind = str(value)
    if kind not in SHAPE_KINDS:
        raise InvalidShape(value)
    return kind


def _set_font_size(value) -> int:
    return int(round(_clamp(_number(value, "font_size"), FONT_MIN, FONT_MAX)))


def _set_tail_angle(value) -> int:
    angle = _number(value, "tail_angle")
    if math.isinf(angle):
        raise InvalidValue("tail_angle", value)
    # Python's % already maps negatives into [0, 360)
    return int(round(angle)) % 360


def _set_tail_length(value) -> float:
    return _clamp(_number(value, "tail_length"), TAIL_LEN_MIN, TAIL_LEN_MAX)


def _set_int(value) -> int:
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidValue("integer field", value)
    return int(value)


def _order(value, fallback: int) -> int:
    """reading_order from incoming data; unusable values keep the fallback."""
    if value is None:
        return fallback
    try:
        return _set_int(value)
    except (InvalidValue, TypeError, ValueError):
        logger.debug("ignoring reading order %r", value)
        return fallback


FIELD_SETTERS: dict[str, Callable[[Any], Any]] = {
    "text":          _set_text,
    "position":      _set_position,
    "scale":         _set_scale,
    "shape_kind":    _set_shape_kind,
    "font_size":     _set_font_size,
    "tail_angle":    _set_tail_angle,
    "tail_length":   _set_tail_length,
    "show_tail":     bool,
    "z_order":       _set_int,
    "reading_order": _set_int,
    "description":   _set_text,
    "panel_number":  _set_int,
}

_DESCRIPTOR_FIELDS = tuple(f.name for f in fields(BubbleDescriptor))


# ---------------------------------------------------------------------------
# BubbleModel
# ---------------------------------------------------------------------------

class BubbleModel:
    """Sole owner of the page's bubble collection."""

    def __init__(self):
        self._bubbles: list[BubbleDescriptor] = []
        self._next_id = 1
        self._subscribers: list[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[], None]):
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[], None]):
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _changed(self):
        for cb in list(self._subscribers):
            cb()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._bubbles)

    def __contains__(self, bubble_id) -> bool:
        return any(b.id == bubble_id for b in self._bubbles)

    def index_of(self, bubble_id) -> int:
        for i, b in enumerate(self._bubbles):
            if b.id == bubble_id:
                return i
        raise NotFound(bubble_id)

    def get(self, bubble_id) -> BubbleDescriptor:
        return replace(self._find(bubble_id))

    def snapshot(self) -> list[BubbleDescriptor]:
        """Copies of every descriptor in paint order.

        sorted() is stable, so equal z-orders keep collection order.
        """
        return [replace(b) for b in
                sorted(self._bubbles, key=lambda b: b.z_order)]

    def _find(self, bubble_id) -> BubbleDescriptor:
        for b in self._bubbles:
            if b.id == bubble_id:
                return b
        raise NotFound(bubble_id)

    def _fresh_id(self) -> int:
        bid = self._next_id
        self._next_id += 1
        return bid

    def _max_z(self) -> int:
        return max((b.z_order for b in self._bubbles), default=0)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def _build(self, values: Mapping[str, Any], z_order: int,
               reading_order: int) -> BubbleDescriptor:
        """Run every supplied field through its setter and fill defaults.

        Unknown shape kinds fall back to the default shape and NaN numbers
        keep the default here: creation never fails on incoming data, only
        update() rejects a bad shape or value.
        """
        desc = BubbleDescriptor(id=self._fresh_id(), z_order=z_order,
                                reading_order=reading_order)
        for name, value in values.items():
            if name == "id":
                continue    # ids are always ours
            setter = FIELD_SETTERS.get(name)
            if setter is None:
                raise UnknownField(name)
            if value is None:
                continue
            try:
                setattr(desc, name, setter(value))
            except InvalidShape as exc:
                logger.debug("%s; using %r", exc, DEFAULT_SHAPE)
                desc.shape_kind = DEFAULT_SHAPE
            except InvalidValue as exc:
                logger.debug("%s; keeping the default", exc)
        return desc

    @staticmethod
    def _as_mapping(item) -> dict[str, Any]:
        if isinstance(item, BubbleDescriptor):
            return {name: getattr(item, name) for name in _DESCRIPTOR_FIELDS}
        return dict(item)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, partial: Mapping[str, Any] | BubbleDescriptor | None = None,
            **fields_) -> int:
        """Append a new bubble and return its id."""
        values = self._as_mapping(partial) if partial is not None else {}
        values.pop("z_order", None)
        reading = values.pop("reading_order", None)
        values.update(fields_)
        desc = self._build(
            values,
            z_order=self._max_z() + 1,
            reading_order=_order(reading, len(self._bubbles) + 1),
        )
        self._bubbles.append(desc)
        logger.debug("added bubble %d (%s)", desc.id, desc.shape_kind)
        self._changed()
        return desc.id

    def update(self, bubble_id, field_name: str, value):
        """Validate/clamp value and write it to one descriptor in place."""
        desc = self._find(bubble_id)
        setter = FIELD_SETTERS.get(field_name)
        if setter is None:
            raise UnknownField(field_name)
        new_value = setter(value)
        if getattr(desc, field_name) == new_value:
            return
        setattr(desc, field_name, new_value)
        self._changed()

    def move(self, bubble_id, dx: float, dy: float):
        x, y = self._find(bubble_id).position
        self.update(bubble_id, "position", (x + dx, y + dy))

    def remove(self, bubble_id):
        desc = self._find(bubble_id)
        self._bubbles.remove(desc)
        logger.debug("removed bubble %d", bubble_id)
        self._changed()

    def restore(self, descriptor: BubbleDescriptor, index: int | None = None):
        """Put a previously removed descriptor back, keeping its id."""
        if descriptor.id in self:
            raise ValueError(f"bubble {descriptor.id} is already present")
        if descriptor.id >= self._next_id:
            self._next_id = descriptor.id + 1
        if index is None:
            index = len(self._bubbles)
        self._bubbles.insert(max(0, min(index, len(self._bubbles))),
                             replace(descriptor))
        self._changed()

    def duplicate(self, bubble_id,
                  offset: tuple[float, float] = DUPLICATE_OFFSET) -> int:
        src = self._find(bubble_id)
        values = self._as_mapping(src)
        values["position"] = (src.position.x + offset[0],
                              src.position.y + offset[1])
        values.pop("reading_order", None)
        return self.add(values)

    def bring_to_front(self, bubble_id):
        desc = self._find(bubble_id)
        others = [b.z_order for b in self._bubbles if b is not desc]
        if others and desc.z_order <= max(others):
            desc.z_order = max(others) + 1
            self._changed()

    def send_to_back(self, bubble_id):
        desc = self._find(bubble_id)
        others = [b.z_order for b in self._bubbles if b is not desc]
        if others and desc.z_order >= min(others):
            desc.z_order = min(others) - 1
            self._changed()

    def replace_all(self, descriptors: Iterable[Mapping[str, Any] | BubbleDescriptor]):
        """Swap the whole collection for an incoming batch (no merge).

        Incoming ids are discarded; the batch is ordered by reading_order and
        paint order follows reading order.
        """
        records = [self._as_mapping(d) for d in descriptors]
        records.sort(key=lambda r: _order(r.get("reading_order"), 0))
        fresh: list[BubbleDescriptor] = []
        for z, rec in enumerate(records, start=1):
            rec.pop("z_order", None)
            reading = rec.pop("reading_order", None)
            fresh.append(self._build(
                rec, z_order=z,
                reading_order=_order(reading, z)))
        self._bubbles = fresh
        logger.info("collection replaced with %d bubble(s)", len(fresh))
        self._changed()

    def restore_all(self, descriptors: Iterable[BubbleDescriptor]):
        """Reinstate an earlier collection exactly, ids included (undo)."""
        self._bubbles = [replace(d) for d in descriptors]
        top = max((b.id for b in self._bubbles), default=0)
        self._next_id = max(self._next_id, top + 1)
        self._changed()

    def clear(self):
        if not self._bubbles:
            return
        self._bubbles = []
        self._changed()

    def descriptors(self) -> list[BubbleDescriptor]:
        """Copies in collection (insertion) order."""
        return copy.deepcopy(self._bubbles)
