"""Per-import views of an import table, resolving names through matched exports."""

from __future__ import annotations

from typing import Optional

from .getters import UNAVAILABLE, Name, get_name_undecorating
from .getters_export import get_export_name, get_export_name_undecorated
from .processing import ExportTableInfo, ImportTableInfo


def get_import_is_ordinal(iti: ImportTableInfo, dll_idx: int, imp_idx: int) -> bool:
    """True if the import is by ordinal, False if it is by name."""
    return iti.are_ordinals[dll_idx][imp_idx]


def get_import_ordinal(iti: ImportTableInfo, dll_idx: int, imp_idx: int) -> Optional[int]:
    """Ordinal of an import by ordinal, otherwise None."""
    if iti.are_ordinals[dll_idx][imp_idx]:
        return iti.ordinals_or_hints[dll_idx][imp_idx]
    return None


def get_import_hint(iti: ImportTableInfo, dll_idx: int, imp_idx: int) -> Optional[int]:
    """Hint of an import by name, otherwise None."""
    if iti.are_ordinals[dll_idx][imp_idx]:
        return None
    return iti.ordinals_or_hints[dll_idx][imp_idx]


def get_import_name(
    iti: ImportTableInfo, eti: ExportTableInfo, dll_idx: int, imp_idx: int
) -> Name:
    """Name of an import; for imports by ordinal, the matched export's name in ``eti``."""
    if iti.are_ordinals[dll_idx][imp_idx]:
        matched = iti.matched_exports[dll_idx][imp_idx]
        return None if matched is None else get_export_name(eti, matched)
    return iti.names[dll_idx][imp_idx]


def get_import_name_undecorated(
    iti: ImportTableInfo, eti: ExportTableInfo, dll_idx: int, imp_idx: int
) -> Name:
    """Like :func:`get_import_name`, with decorated names undecorated."""
    if iti.are_ordinals[dll_idx][imp_idx]:
        matched = iti.matched_exports[dll_idx][imp_idx]
        return None if matched is None else get_export_name_undecorated(eti, matched)
    name = iti.names[dll_idx][imp_idx]
    if name is None or not name.startswith("?"):
        return name
    undecorated = iti.undecorated_names[dll_idx][imp_idx]
    if undecorated is None:
        return get_name_undecorating()
    if undecorated is UNAVAILABLE:
        return name
    return undecorated