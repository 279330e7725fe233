"""Shared pydantic base for entities that travel as camelCase JSON.

Learn: The stored files, the REST payloads and the WebSocket events all
use one camelCase shape (`productName`, `followUps`, `updatedAt`). Python
code works with snake_case attributes; the alias generator maps between
the two, and `populate_by_name` lets backends build models either way.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        """JSON-ready dict in the canonical camelCase shape."""
        return self.model_dump(mode="json", by_alias=True)
