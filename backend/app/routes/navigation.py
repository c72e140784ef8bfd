"""
LensCritique Backend: Navigation Route
=======================================

What:  GET /api/navigation?path=/review/123 tells the client whether the
       caller may open a screen, and where to go instead when not.
How:   Pure evaluation of the route guard against the caller's AppContext.
"""

from fastapi import APIRouter, Depends, Query

from app.schemas.auth import NavigationResponse
from app.services.session_context import AppContext, resolve_route
from app.routes.dependencies import get_app_context

router = APIRouter(prefix="/api", tags=["Navigation"])


@router.get(
    "/navigation",
    response_model=NavigationResponse,
    summary="Route guard decision for a client path",
)
async def navigate(
    path: str = Query(default="/", description="Client route, e.g. /create or /review/<id>"),
    ctx: AppContext = Depends(get_app_context),
) -> NavigationResponse:
    decision = resolve_route(path, ctx)
    return NavigationResponse(
        path=decision.path,
        allowed=decision.allowed,
        redirect_to=decision.redirect_to,
        guard_state=decision.state.value,
    )
