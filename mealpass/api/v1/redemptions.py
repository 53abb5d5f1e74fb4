"""
扫码核销路由模块
所有接口仅限管理人员；拒绝原因以 200 + accepted=false 返回
"""

from typing import List

from fastapi import APIRouter, Depends

from ...core.security import require_operator
from ...models.user import Requester
from ...schemas.booking import RedemptionRequest, VerificationResponse
from ...services.redemption_service import RedemptionService
from ..deps import get_redemption_service

router = APIRouter()


@router.post("", response_model=VerificationResponse)
def verify_and_consume(
    req: RedemptionRequest,
    operator: Requester = Depends(require_operator),
    service: RedemptionService = Depends(get_redemption_service),
):
    """校验核销码并核销"""
    result = service.verify_and_consume(req.token, actor_id=operator.user_id)
    return VerificationResponse.from_result(result)


@router.post("/check", response_model=VerificationResponse)
def check_token(
    req: RedemptionRequest,
    operator: Requester = Depends(require_operator),
    service: RedemptionService = Depends(get_redemption_service),
):
    """只校验不核销"""
    return VerificationResponse.from_result(service.check(req.token))


@router.post("/bookings/{booking_id}", response_model=VerificationResponse)
def consume_booking(
    booking_id: str,
    operator: Requester = Depends(require_operator),
    service: RedemptionService = Depends(get_redemption_service),
):
    """按预订ID确认核销"""
    result = service.consume(booking_id, actor_id=operator.user_id)
    return VerificationResponse.from_result(result)


@router.get("/recent", response_model=List[VerificationResponse])
def recent_scans(
    operator: Requester = Depends(require_operator),
    service: RedemptionService = Depends(get_redemption_service),
):
    """最近扫描记录，最新在前"""
    return [VerificationResponse.from_result(r) for r in service.recent_scans()]
