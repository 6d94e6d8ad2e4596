"""Document payload models."""

from docgate.app.models.document import Description, Document, Product

__all__ = ["Description", "Document", "Product"]
