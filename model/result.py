from pydantic import BaseModel


class Result(BaseModel):
    filename: str
    filepath: str
    content_type: str
