"""pandas interop for record previews."""

from __future__ import annotations

from typing import Any

import pandas as pd

from tessera.values import to_jsonable


def records_to_dataframe(records: list[dict[str, Any]]) -> pd.DataFrame:
    """Flatten records (nested objects become dotted columns) for previews."""
    if not records:
        return pd.DataFrame()
    return pd.json_normalize(to_jsonable(records))
