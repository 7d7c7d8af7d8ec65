from pydantic import BaseModel


class ChatTurn(BaseModel):
    role: str
    content: str
