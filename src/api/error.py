from fastapi import Request, status
from fastapi.responses import JSONResponse
from libs.result import Error

ERROR_STATUS_CODES = {
    "INVALID_REQUEST": status.HTTP_400_BAD_REQUEST,
    "WEBHOOK_REJECTED": status.HTTP_400_BAD_REQUEST,
    "INSUFFICIENT_CREDITS": status.HTTP_402_PAYMENT_REQUIRED,
    "ACCOUNT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "GENERATION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "NO_SUCH_RESERVATION": status.HTTP_404_NOT_FOUND,
    "RESERVATION_CONFLICT": status.HTTP_409_CONFLICT,
    "PROVIDER_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
    "PAYMENT_PROVIDER_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
    "STORE_UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
}


class ClientError(Exception):
    """Use case error surfaced to the HTTP client as {"error": {...}}"""

    def __init__(self, error: Error, status_code: int = None):
        self.error = error
        self.status_code = status_code or ERROR_STATUS_CODES.get(
            error.code, status.HTTP_400_BAD_REQUEST
        )
        super().__init__(error.message)


async def client_error_handler(request: Request, exc: ClientError) -> JSONResponse:
    body = {"code": exc.error.code, "message": exc.error.message}
    if exc.error.reason:
        body["reason"] = exc.error.reason
    if exc.error.details:
        body["details"] = exc.error.details
    return JSONResponse(status_code=exc.status_code, content={"error": body})
