"""Helpers for handing a Dataset to downstream collaborators."""

from __future__ import annotations

import json

from docsheet.core.types import Dataset


def dataset_columns(dataset: Dataset) -> list[str]:
    """Ordered union of column names across every record."""
    columns: dict[str, None] = {}
    for record in dataset:
        columns.update(dict.fromkeys(record))
    return list(columns)


def dataset_to_json(dataset: Dataset, *, indent: int | None = None) -> str:
    """Serialize a Dataset as a JSON array.

    Normalizing the returned text again reproduces ``dataset``.
    """
    return json.dumps(dataset, ensure_ascii=False, indent=indent)
