"""
Document Registry

Metadata for files attached to a case or client. The bytes live in an
external blob store; this registry only keeps the reference (url, size,
mime type) and a version counter that moves only when the content is
replaced.
"""
import logging
from typing import Any, Dict, List

from db.store import Store
from errors import ValidationError
from models import BlobReference, Document, DocumentType, clean_text, parse_enum
from tenant import TenantContext, TenantScopedStore

logger = logging.getLogger(__name__)

METADATA_FIELDS = (
    "name", "description", "document_type", "case_id", "client_id", "is_template",
)


def _blob_columns(content: BlobReference) -> Dict[str, Any]:
    if content is None:
        return {"file_url": None, "file_size": None, "mime_type": None}
    if not content.url:
        raise ValidationError("file_url", "is required when content is given")
    if content.size is not None and content.size < 0:
        raise ValidationError("file_size", "must not be negative")
    return {
        "file_url": content.url,
        "file_size": content.size,
        "mime_type": content.mime_type,
    }


class DocumentRegistry:
    """Firm-scoped document metadata."""

    def __init__(self, store: Store, context: TenantContext = None):
        self.scoped = TenantScopedStore(store, context)

    def _validate(self, data: Dict[str, Any]) -> Dict[str, Any]:
        name = clean_text(data.get("name"))
        if not name:
            raise ValidationError("name", "is required")
        row = {
            "name": name,
            "description": clean_text(data.get("description")),
            "document_type": parse_enum(
                DocumentType, "document_type", data.get("document_type"), DocumentType.OTHER,
            ).value,
            "case_id": data.get("case_id") or None,
            "client_id": data.get("client_id") or None,
            "is_template": bool(data.get("is_template")),
        }
        self.scoped.require_reference("cases", row["case_id"])
        self.scoped.require_reference("clients", row["client_id"])
        return row

    def create(self, name: str, content: BlobReference = None, document_type: str = None,
               description: str = None, case_id: str = None, client_id: str = None,
               is_template: bool = False) -> Document:
        """Register a document at version 1. content may be omitted for metadata-only records."""
        row = self._validate({
            "name": name,
            "description": description,
            "document_type": document_type,
            "case_id": case_id,
            "client_id": client_id,
            "is_template": is_template,
        })
        row.update(_blob_columns(content))
        row["version"] = 1
        row["uploaded_by"] = self.scoped.context.user_id

        document = Document.from_row(self.scoped.insert("documents", row))
        logger.info("Registered document %s in firm %s", document.id, document.firm_id)
        return document

    def update(self, document_id: str, **changes) -> Document:
        """Metadata-only edit. Never changes content or version."""
        unknown = set(changes) - set(METADATA_FIELDS)
        if unknown:
            raise ValidationError(sorted(unknown)[0], "is not an editable document field")

        current = self.scoped.get("documents", document_id)
        merged = {name: current.get(name) for name in METADATA_FIELDS}
        merged.update(changes)
        row = self._validate(merged)

        document = Document.from_row(self.scoped.update("documents", document_id, row))
        logger.info("Updated document %s metadata", document.id)
        return document

    def replace_content(self, document_id: str, content: BlobReference) -> Document:
        """Point the document at new content and bump its version."""
        if content is None:
            raise ValidationError("content", "is required")
        current = self.scoped.get("documents", document_id)
        fields = _blob_columns(content)
        fields["version"] = (current.get("version") or 1) + 1
        fields["uploaded_by"] = self.scoped.context.user_id

        document = Document.from_row(self.scoped.update("documents", document_id, fields))
        logger.info("Document %s now at version %d", document.id, document.version)
        return document

    def get(self, document_id: str) -> Document:
        return Document.from_row(self.scoped.get("documents", document_id))

    def list(self, document_type: str = None, case_id: str = None, client_id: str = None,
             is_template: bool = None) -> List[Document]:
        """List documents, newest first."""
        filters = {}
        if document_type:
            filters["document_type"] = parse_enum(DocumentType, "document_type", document_type).value
        if case_id:
            filters["case_id"] = case_id
        if client_id:
            filters["client_id"] = client_id
        if is_template is not None:
            filters["is_template"] = bool(is_template)
        rows = self.scoped.list("documents", filters, order_by="created_at", descending=True)
        return [Document.from_row(row) for row in rows]

    def list_templates(self) -> List[Document]:
        return self.list(is_template=True)
