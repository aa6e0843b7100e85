# pedeps

`pedeps` reads Windows Portable Executable (PE) images, the format of `.exe`
and `.dll` files, and collects what a dependency viewer needs to show:

- the DOS (MZ) header, the COFF header and both parts of the optional header,
  for 32-bit (PE32) and 64-bit (PE32+) images;
- the data directories and the section table;
- the import table and the delay-load import table: the DLL names, and for
  each DLL the list of its imports, each one by name (with a hint) or by
  ordinal;
- the export table: ordinals, names, hints, entry-point RVAs and forwarder
  strings;
- the id of the manifest resource the loader would pick.

It is pure Python with no third-party dependencies.

## Installing

```
pip install .
```

## Using it

Read the whole file into memory and pass the bytes to `process_all`:

```python
from pathlib import Path

from pedeps.getters_export import get_export_name, get_export_ordinal
from pedeps.getters_import import get_import_name
from pedeps.processing import process_all
from pedeps.unique_strings import UniqueStrings

data = Path("example.dll").read_bytes()
strings = UniqueStrings()
tables = process_all(data, strings)

print("32-bit" if tables.is_32_bit else "64-bit")
print("manifest id:", tables.manifest_id)

iti = tables.imports
eti = tables.exports
for dll_idx, dll_name in enumerate(iti.dll_names):
    print(dll_name)
    for imp_idx in range(iti.import_counts[dll_idx]):
        print("   ", get_import_name(iti, eti, dll_idx, imp_idx))

for idx in range(eti.count):
    print(get_export_ordinal(eti, idx), get_export_name(eti, idx))
```

`process_all` returns a `PeTables` holding `imports` (an `ImportTableInfo`),
`exports` (an `ExportTableInfo`), `export_name_order`, `manifest_id` and
`is_32_bit`. Regular DLLs come before delay-loaded ones in `ImportTableInfo`.
`UniqueStrings` is optional; when given, equal names share one string object.

An image that is damaged or is not a PE file raises an exception derived from
`pedeps.mz.PeError`, whose message names the check that failed. Deviations
from the specification that can be tolerated are issued as
`pedeps.optional_windows.PeWarning` through the `warnings` module.

The lower-level parsers can be used on their own, for example
`pedeps.mz.parse_mz_header`, `pedeps.coff_full.parse_coff_full`,
`pedeps.import_table.parse_import_table`,
`pedeps.export_table.parse_export_directory_table` and
`pedeps.resource_table.parse_resource_root_directory_table`.

`pedeps.thread_worker.ThreadWorker` runs queued callables in order on one
background thread and can be used as a context manager.

## What it does not do

- There is no command-line program and no graphical viewer; `pedeps` is a
  library only.
- It does not undecorate C++ names. The `undecorated_names` slots stay `None`,
  so `get_export_name_undecorated` and `get_import_name_undecorated` return the
  "undecorating" placeholder for names starting with `?`.
- It does not match an import against the DLL that provides it. The
  `matched_exports` slots stay `None`, so an import by ordinal has no name, and
  `are_used` in the export table stays `False`.
- It does not search the disk for dependent DLLs or walk the dependency tree.

## Running the tests

```
pip install .[test]
pytest
```