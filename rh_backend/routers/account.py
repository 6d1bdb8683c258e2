import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from rh_backend.domain.account_rules import Err, Result
from rh_backend.models.dc_models import (
    AddressModel,
    LoginModel,
    PlayfabIdModel,
    SessionTokenModel,
    UniqueHashModel,
    UserDataModel,
    UserObjIdModel,
)
from rh_backend.models.schema_models import ErrorSchema
from rh_backend.services.account import AccountWorkflow

account_router = APIRouter(prefix="/rh-backend/account")


def get_workflow(request: Request) -> AccountWorkflow:
    return request.app.state.workflow


def to_response(result: Result):
    """Serialize an Ok value as the response body, or an Err as HTTP 400"""
    if isinstance(result, Err):
        logging.info(f"Request failed ({result.error.kind.value}): {result.error.message}")
        body = ErrorSchema(kind=result.error.kind, message=result.error.message)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump(mode="json"))
    if isinstance(result.value, BaseModel):
        return result.value.model_dump(by_alias=True)
    return result.value


class SessionAPI:
    @staticmethod
    @account_router.post("/userLogin")
    async def user_login(body: LoginModel, workflow: AccountWorkflow = Depends(get_workflow)):
        return to_response(await workflow.authenticate(body.username, body.password))

    @staticmethod
    @account_router.post("/retrieveUserBySessionToken")
    async def retrieve_user_by_session_token(
        body: SessionTokenModel, workflow: AccountWorkflow = Depends(get_workflow)
    ):
        return to_response(await workflow.resolve_identity_by_session(body.session_token))

    @staticmethod
    @account_router.post("/getUserIdFromUniqueHash")
    async def get_user_id_from_unique_hash(
        body: UniqueHashModel, workflow: AccountWorkflow = Depends(get_workflow)
    ):
        return to_response(await workflow.get_user_id_from_unique_hash(body.unique_hash))


class LoggedInUserAPI:
    @staticmethod
    @account_router.post("/addLoggedInUser")
    async def add_logged_in_user(body: SessionTokenModel, workflow: AccountWorkflow = Depends(get_workflow)):
        return to_response(await workflow.mark_present(body.session_token))

    @staticmethod
    @account_router.post("/removeLoggedInUser")
    async def remove_logged_in_user(body: AddressModel, workflow: AccountWorkflow = Depends(get_workflow)):
        return to_response(await workflow.mark_absent(body.address))


class UserDataAPI:
    @staticmethod
    @account_router.post("/addUserData")
    async def add_user_data(body: UserDataModel, workflow: AccountWorkflow = Depends(get_workflow)):
        return to_response(await workflow.bootstrap_profile_data(body.user_obj_id, body.playfab_id))

    @staticmethod
    @account_router.post("/checkUserDataExists")
    async def check_user_data_exists(body: UserObjIdModel, workflow: AccountWorkflow = Depends(get_workflow)):
        return to_response(await workflow.check_profile_data_exists(body.user_obj_id))


class PlayfabAPI:
    @staticmethod
    @account_router.post("/addPlayfabId")
    async def add_playfab_id(body: PlayfabIdModel, workflow: AccountWorkflow = Depends(get_workflow)):
        return to_response(await workflow.link_playfab_id(body.user_obj_id, body.playfab_id))

    @staticmethod
    @account_router.get("/getPlayfabId/{address}")
    async def get_playfab_id(address: str, workflow: AccountWorkflow = Depends(get_workflow)):
        return to_response(await workflow.get_playfab_id(address))

    @staticmethod
    @account_router.post("/checkPlayfabIdExists")
    async def check_playfab_id_exists(body: UserObjIdModel, workflow: AccountWorkflow = Depends(get_workflow)):
        return to_response(await workflow.check_playfab_id_exists(body.user_obj_id))
