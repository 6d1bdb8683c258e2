from pydantic import BaseModel, Field
from typing import Literal, Optional

from rh_backend.domain.account_rules import ErrorKind


class StatusSchema(BaseModel):
    status: Literal["ok"] = "ok"


class LoginSchema(StatusSchema):
    session_token: str = Field(alias="sessionToken")
    user_unique_hash: Optional[str] = Field(default=None, alias="userUniqueHash")

    class Config:
        populate_by_name = True


class LoggedInUserSchema(StatusSchema):
    user: str


class UserIdSchema(StatusSchema):
    user_obj_id: str = Field(alias="userObjId")

    class Config:
        populate_by_name = True


class PlayfabIdSchema(StatusSchema):
    playfab_id: str = Field(alias="playfabId")

    class Config:
        populate_by_name = True


class ErrorSchema(BaseModel):
    status: Literal["error"] = "error"
    kind: ErrorKind
    message: str
