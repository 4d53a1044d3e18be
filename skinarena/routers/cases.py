from uuid import UUID

from fastapi import APIRouter, Depends

from skinarena.context import AppContext, get_context
from skinarena.models.dc_models import (
    OpenCaseModel,
    OpenCaseResultModel,
    ProfileModel,
    PublicCaseModel,
    SellItemModel,
    SellItemsModel,
    UploadCaseModel,
)

case_router = APIRouter()


class CaseAPI:
    @staticmethod
    @case_router.post("/uploadCase")
    async def upload_case(request: UploadCaseModel, context: AppContext = Depends(get_context)):
        case = await context.cases.upload_case(request)
        return {"success": True, "message": "Case uploaded successfully", "case": case}

    @staticmethod
    @case_router.get("/cases/{case_id}", response_model=PublicCaseModel)
    async def read_case(case_id: UUID, context: AppContext = Depends(get_context)):
        return await context.cases.read_case(case_id)

    @staticmethod
    @case_router.post("/cases/{case_id}/open", response_model=OpenCaseResultModel)
    async def open_case(
        case_id: UUID, request: OpenCaseModel, context: AppContext = Depends(get_context)
    ):
        """Open a case one or more times

        Args:
            case_id (UUID): The case to open
            request (OpenCaseModel): paying user and number of openings

        Returns:
            OpenCaseResultModel: received items, new balance, level and exp
        """
        return await context.cases.open_case(case_id, request.user_id, request.num_cases)


class UserAPI:
    @staticmethod
    @case_router.get("/user/{user_id}", response_model=ProfileModel)
    async def read_user(user_id: UUID, context: AppContext = Depends(get_context)):
        return await context.cases.read_profile(user_id)

    @staticmethod
    @case_router.post("/user/{user_id}/sell")
    async def sell_item(
        user_id: UUID, request: SellItemModel, context: AppContext = Depends(get_context)
    ):
        result = await context.cases.sell_item(user_id, request.item_id)
        return {"success": True, "message": result.message, "newBalance": result.new_balance}

    @staticmethod
    @case_router.post("/user/{user_id}/sellAll")
    async def sell_items(
        user_id: UUID, request: SellItemsModel, context: AppContext = Depends(get_context)
    ):
        result = await context.cases.sell_items(user_id, request.item_ids)
        return {"success": True, "message": result.message, "newBalance": result.new_balance}
