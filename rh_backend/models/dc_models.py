from pydantic import BaseModel, Field
from typing import Optional


class LoginModel(BaseModel):
    username: str
    password: str


class SessionTokenModel(BaseModel):
    session_token: str = Field(alias="sessionToken")

    class Config:
        populate_by_name = True


class AddressModel(BaseModel):
    address: str


class UserObjIdModel(BaseModel):
    user_obj_id: str = Field(alias="userObjId")

    class Config:
        populate_by_name = True


class UserDataModel(BaseModel):
    user_obj_id: str = Field(alias="userObjId")
    playfab_id: Optional[str] = Field(default=None, alias="playfabId")

    class Config:
        populate_by_name = True


class PlayfabIdModel(BaseModel):
    user_obj_id: str = Field(alias="userObjId")
    playfab_id: str = Field(alias="playfabId")

    class Config:
        populate_by_name = True


class UniqueHashModel(BaseModel):
    unique_hash: str = Field(alias="uniqueHash")

    class Config:
        populate_by_name = True
