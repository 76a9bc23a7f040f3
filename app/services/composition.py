from typing import Optional, Protocol, Sequence, Tuple
import uuid

from app.core.exceptions import CompositionError, CompositionErrorKind
from app.db.schema import FibreType, SUSTAINABLE_FIBRES


class HasPercentage(Protocol):
    percentage: int


def validate_composition(
    entries: Sequence[HasPercentage],
    component_id: Optional[uuid.UUID] = None,
) -> None:
    """
    Checks a fabric's fibre lines add up to exactly 100%.

    Pure: no I/O, no mutation. Raises CompositionError with the offending
    total so the caller can show it. Integer sum, no tolerance.
    """
    if not entries:
        raise CompositionError(CompositionErrorKind.EMPTY, 0, component_id)

    total = sum(entry.percentage for entry in entries)

    if any(entry.percentage < 0 or entry.percentage > 100 for entry in entries):
        raise CompositionError(
            CompositionErrorKind.OUT_OF_RANGE, total, component_id)

    if total < 100:
        raise CompositionError(
            CompositionErrorKind.INCOMPLETE, total, component_id)
    if total > 100:
        raise CompositionError(
            CompositionErrorKind.OVERFLOW, total, component_id)


def default_fibre_flags(
    fibre_type: FibreType,
    sustainable: Optional[bool] = None,
    recycled: Optional[bool] = None,
) -> Tuple[bool, bool]:
    """Fills unset sustainable/recycled flags from the fibre type."""
    if sustainable is None:
        sustainable = fibre_type in SUSTAINABLE_FIBRES
    if recycled is None:
        recycled = fibre_type.value.startswith("recycled_")
    return sustainable, recycled
