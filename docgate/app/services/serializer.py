"""JSON serialization of document payloads."""

import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel


def serialize_document(document: Any) -> bytes:
    """Serialize a document to the UTF-8 JSON body sent upstream.

    Pydantic models are dumped by alias with None fields dropped;
    plain mappings are passed through json.dumps.

    Raises:
        TypeError: If the document is neither a model nor a mapping
    """
    if isinstance(document, BaseModel):
        return document.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
    if isinstance(document, Mapping):
        return json.dumps(dict(document), ensure_ascii=False, default=str).encode("utf-8")
    raise TypeError(f"Cannot serialize document of type {type(document).__name__}")
