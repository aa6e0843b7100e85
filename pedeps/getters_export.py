"""Per-row views of an export table, resolving names and placeholders."""

from __future__ import annotations

from typing import Optional, Union

from .getters import UNAVAILABLE, Name, get_export_name_processing, get_name_undecorating
from .processing import ExportTableInfo


def _needs_undecorating(name: str) -> bool:
    return name.startswith("?")


def _undecorated(name: str, undecorated: Name) -> Name:
    if not _needs_undecorating(name):
        return name
    if undecorated is None:
        return get_name_undecorating()
    if undecorated is UNAVAILABLE:
        return name
    return undecorated


def get_export_type(eti: ExportTableInfo, idx: int) -> bool:
    """True if export ``idx`` is an address, False if it is a forwarder."""
    return eti.are_rvas[idx]


def get_export_ordinal(eti: ExportTableInfo, idx: int) -> int:
    """Ordinal of export ``idx``."""
    return eti.ordinals[idx]


def get_export_hint(eti: ExportTableInfo, idx: int) -> Optional[int]:
    """Hint of export ``idx``, or None if it is exported by ordinal only."""
    return eti.hints[idx]


def get_export_name(eti: ExportTableInfo, idx: int) -> Name:
    """Exported or debug name of export ``idx``, a placeholder, or None."""
    if eti.hints[idx] is not None:
        return eti.names[idx]
    debug_name = eti.names[idx]
    if debug_name is None:
        return get_export_name_processing() if eti.are_rvas[idx] else None
    if debug_name is UNAVAILABLE:
        return None
    return debug_name


def get_export_name_undecorated(eti: ExportTableInfo, idx: int) -> Name:
    """Like :func:`get_export_name`, with decorated names undecorated."""
    name = get_export_name(eti, idx)
    if not isinstance(name, str):
        return name
    return _undecorated(name, eti.undecorated_names[idx])


def get_export_entry_point(eti: ExportTableInfo, idx: int) -> Union[int, str]:
    """RVA or forwarder string of export ``idx``."""
    return eti.rvas_or_forwarders[idx]