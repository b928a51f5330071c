from __future__ import annotations

from typing import Sequence


class AssetNotFoundError(FileNotFoundError):
    """A reference could not be found verbatim or under any search path."""

    def __init__(self, ref: object, search_paths: Sequence[str] = ()) -> None:
        self.ref = ref
        self.search_paths = list(search_paths)

        message = f"File not found: {ref}"
        if self.search_paths:
            listing = "\n".join(f"  - {p}" for p in self.search_paths)
            message += f"\nSearched in:\n{listing}"
        super().__init__(message)
