"""Turning model replies into ordered tabular Datasets."""

from docsheet.response.dataset import dataset_columns, dataset_to_json
from docsheet.response.normalizer import (
    NormalizedReply,
    ResponseNormalizer,
    normalize_reply,
)
from docsheet.response.strategies import (
    ParseInput,
    ParseStrategy,
    default_strategies,
    locate_json_candidate,
    parse_json,
    parse_pipe_table,
    repair_truncated_json,
)

__all__ = [
    "NormalizedReply",
    "ParseInput",
    "ParseStrategy",
    "ResponseNormalizer",
    "dataset_columns",
    "dataset_to_json",
    "default_strategies",
    "locate_json_candidate",
    "normalize_reply",
    "parse_json",
    "parse_pipe_table",
    "repair_truncated_json",
]
