"""Miro OAuth2 authorization-code routes."""
import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from src.api.dependencies import get_services
from src.api.envelope import status_for
from src.errors import ProductMaestroError

logger = structlog.get_logger()

router = APIRouter(prefix="/api/integrations/miro", tags=["integrations"])

NOT_CONFIGURED = {
    "success": False,
    "error": "Miro OAuth is not configured: set MIRO_CLIENT_ID and MIRO_CLIENT_SECRET",
}


@router.get("/authorize")
async def authorize(request: Request):
    """Redirect the user to Miro's consent screen."""
    flow = get_services(request).miro_oauth
    if flow is None:
        return JSONResponse(status_code=503, content=NOT_CONFIGURED)
    url, _ = flow.authorization_url()
    logger.info("miro_oauth_redirect")
    return RedirectResponse(url, status_code=307)


@router.get("/callback")
async def callback(
    request: Request,
    code: str = Query(default=""),
    state: str = Query(default=""),
    error: str = Query(default=""),
):
    """Exchange the authorization code and switch the Miro client to the token."""
    services = get_services(request)
    flow = services.miro_oauth
    if flow is None:
        return JSONResponse(status_code=503, content=NOT_CONFIGURED)
    if error:
        logger.warning("miro_oauth_denied", error=error)
        return JSONResponse(status_code=400, content={"success": False, "error": f"Authorization denied: {error}"})

    try:
        token = await flow.exchange_code(code, state)
    except ProductMaestroError as e:
        logger.warning("miro_oauth_failed", error_code=e.code, error=e.message)
        status = status_for(e)
        return JSONResponse(
            status_code=status if status != 500 else 502,
            content={"success": False, "error": e.message},
        )

    await services.use_miro_token(token)
    logger.info("miro_oauth_completed", team_id=token.team_id)
    return {
        "success": True,
        "message": "Miro connected. Visual design is now available.",
        "teamId": token.team_id,
        "scope": token.scope,
    }
