from application.dtos.camel_model import CamelModel


class ProjectDeletedResponse(CamelModel):
    message: str
    deleted: bool = True
