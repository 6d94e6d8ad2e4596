"""Document payload models for the remote create-document API.

Field names follow the remote API: snake_case on the wire except
``importRequest`` and ``participantInn``, which are exposed under
snake_case attribute names and serialized by alias.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Description(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    participant_inn: str = Field(alias="participantInn")


class Product(BaseModel):
    """One product line of a document."""

    certificate_document: Optional[str] = None
    certificate_document_date: Optional[date] = None
    certificate_document_number: Optional[str] = None
    owner_inn: str
    producer_inn: str
    production_date: date
    tnved_code: str
    uit_code: Optional[str] = None
    uitu_code: Optional[str] = None


class Document(BaseModel):
    """Document submitted to the remote API.

    The gate treats instances as opaque; only the serializer looks inside.
    """

    model_config = ConfigDict(populate_by_name=True)

    description: Optional[Description] = None
    doc_id: str
    doc_status: str
    doc_type: str = "LP_INTRODUCE_GOODS"
    import_request: bool = Field(default=False, alias="importRequest")
    owner_inn: str
    participant_inn: str
    producer_inn: str
    production_date: date
    production_type: str
    products: List[Product] = Field(default_factory=list)
    reg_date: date
    reg_number: str
