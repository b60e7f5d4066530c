"""
Data input normalization for the simulation engine.

Converts various input formats (pandas DataFrame, dict of columns, 2-D numpy
array or list of rows) into a standalone ``pandas.DataFrame`` copy.
"""

from typing import List, Optional

import numpy as np
import pandas as pd


def normalize_dataset(
    data,
    columns: Optional[List[str]] = None,
) -> pd.DataFrame:
    """
    Convert user-supplied tabular data into a DataFrame copy.

    Accepted inputs:
        - pandas DataFrame: copied, columns kept
        - dict of {name: array}: keys become column names
        - list of rows or 2D numpy array: requires *columns*

    The returned frame never shares memory with the input, so callers may
    append or fill columns without mutating the caller's data.

    Args:
        data: Raw data in any supported format.
        columns: Column names (only used for numpy/list input).

    Returns:
        A new ``pandas.DataFrame``.

    Raises:
        TypeError: If *data* is an unsupported type.
        ValueError: If *columns* is missing or its length doesn't match the
            array width, or if column names are duplicated.
    """
    # --- pandas DataFrame ---------------------------------------------------
    if isinstance(data, pd.DataFrame):
        frame = data.copy()

    # --- dict ---------------------------------------------------------------
    elif isinstance(data, dict):
        frame = pd.DataFrame({name: np.asarray(values) for name, values in data.items()})

    # --- list / numpy array -------------------------------------------------
    elif isinstance(data, (list, np.ndarray)):
        arr = np.asarray(data)

        # 1-D → single column
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)

        if columns is None:
            raise ValueError("columns must be given for array or list input")

        if len(columns) != arr.shape[1]:
            raise ValueError(f"columns length ({len(columns)}) must match data columns ({arr.shape[1]})")

        frame = pd.DataFrame(arr, columns=list(columns))

    # --- unsupported --------------------------------------------------------
    else:
        raise TypeError("data must be a pandas DataFrame, dict, numpy array, or list")

    if frame.columns.duplicated().any():
        duplicated = sorted(set(map(str, frame.columns[frame.columns.duplicated()])))
        raise ValueError(f"Duplicate column names: {', '.join(duplicated)}")

    return frame


def numeric_column(frame: pd.DataFrame, name: str) -> np.ndarray:
    """Return column *name* as a float array (missing values as ``NaN``).

    Raises:
        ValueError: If the column holds non-numeric values.
    """
    try:
        return pd.to_numeric(frame[name], errors="raise").to_numpy(dtype=float, na_value=np.nan)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Column '{name}' must be numeric: {e}") from e


def row_keys(frame: pd.DataFrame, group_keys) -> List[tuple]:
    """Return the group-key tuple of every row, as plain Python values."""
    if len(group_keys) == 0:
        return [()] * len(frame)
    return list(zip(*(frame[key].tolist() for key in group_keys)))
