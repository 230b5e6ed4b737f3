from typing import Any

from application.dtos.camel_model import CamelModel


class ClientArchivedResponse(CamelModel):
    client: dict[str, Any]
    message: str = "Client archived successfully"
