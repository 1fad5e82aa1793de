import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from dependencies import get_waitlist_service
from errors import UnexpectedError, WaitlistError
from schemas.waitlist import MessageResponse, RateLimitedResponse, WaitlistResponse
from services.waitlist_service import WaitlistService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["Waitlist"])


@router.post(
    "/waitlist",
    response_model=WaitlistResponse,
    responses={
        400: {"model": MessageResponse, "description": "Unidentified client, malformed body, missing token or invalid field"},
        403: {"model": MessageResponse, "description": "reCAPTCHA verification failed"},
        409: {"model": MessageResponse, "description": "Email already on the waitlist"},
        429: {"model": RateLimitedResponse, "description": "Too many requests"},
        500: {"model": MessageResponse, "description": "Server configuration or storage error"},
    },
)
async def join_waitlist(request: Request, service: WaitlistService = Depends(get_waitlist_service)):
    """ Add a name/email pair to the waitlist """
    forwarded_for = request.headers.get("x-forwarded-for")
    try:
        result = await service.submit(forwarded_for, request.body)
    except WaitlistError as e:
        logger.log(e.log_level, f"Waitlist submission rejected ({e.status_code}): {e.message}")
        return JSONResponse(status_code=e.status_code, content=e.to_body())
    except Exception:
        logger.exception(f"Error processing waitlist submission from {forwarded_for}")
        error = UnexpectedError()
        return JSONResponse(status_code=error.status_code, content=error.to_body())

    return JSONResponse(status_code=200, content=result)
