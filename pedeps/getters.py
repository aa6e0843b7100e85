"""Placeholder names shown while a name is still being worked out."""

from __future__ import annotations

import enum
from typing import Optional, Union


class _Placeholder(enum.Enum):
    UNDECORATING = "Undecorating..."
    PROCESSING = "Processing..."
    UNAVAILABLE = "Unavailable"


# Stored in a name slot once a lookup has finished without a result: an
# undecorated name that could not be produced, or a debug name that was not found.
UNAVAILABLE = _Placeholder.UNAVAILABLE

Name = Optional[Union[str, _Placeholder]]


def get_name_undecorating() -> _Placeholder:
    """Placeholder for a decorated name whose undecorated form is not ready yet."""
    return _Placeholder.UNDECORATING


def get_export_name_processing() -> _Placeholder:
    """Placeholder for an unnamed export whose debug name is still being looked up."""
    return _Placeholder.PROCESSING