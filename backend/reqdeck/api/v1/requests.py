import logging

from fastapi import APIRouter, Depends

from reqdeck.api.deps import get_executor
from reqdeck.errors import TransportError
from reqdeck.schemas.request import ApiRequest
from reqdeck.schemas.response import ApiResponse
from reqdeck.services.executor import RequestExecutor

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/send", response_model=ApiResponse)
async def send_request(
    payload: ApiRequest,
    executor: RequestExecutor = Depends(get_executor),
):
    logger.info("Send request | method=%s url=%s", payload.method.value, payload.url)
    try:
        response = await executor.send(payload)
    except TransportError as exc:
        logger.warning("Send request failed | %s %s: %s", payload.method.value, payload.url, exc)
        return ApiResponse.failure(str(exc))

    if response.status_code is not None:
        logger.info(
            "Send response | status=%d elapsed=%.2fms size=%d",
            response.status_code,
            response.response_time.total_seconds() * 1000,
            response.content_length,
        )
    return response
