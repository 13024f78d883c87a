from typing import List

from ems.core.cache import Entity, user_scope
from ems.core.exceptions import NotFoundError
from ems.core.schemas import Notice
from ems.models.document import Document
from ems.schemas.document import DocumentCreate, DocumentResponse
from ems.services.base import CrudService, MutationResult


class DocumentService(CrudService):
    """Document metadata only; the files themselves live in external storage."""
    model = Document
    entity = Entity.DOCUMENTS
    label = "document"
    response_schema = DocumentResponse

    def default_order(self):
        return [Document.upload_date.desc(), Document.id.desc()]

    def list_mine(self, user_id: int) -> List[DocumentResponse]:
        return self.fetch(user_scope(user_id), Document.user_id == user_id)

    def register(self, user_id: int, data: DocumentCreate) -> MutationResult:
        values = data.model_dump()
        values["user_id"] = user_id
        return self.create(values, Notice(title="Document Added", description=f"{data.document_name} has been saved."))

    def delete_own(self, user_id: int, document_id: int) -> MutationResult:
        row = self.get_or_404(document_id)
        if row.user_id != user_id:
            raise NotFoundError("Document")
        return self.delete(document_id, Notice(title="Document Deleted", description="Document has been deleted."))
