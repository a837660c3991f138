"""Pipeline settings API routes."""

from fastapi import APIRouter, HTTPException, status

from ingestor.schemas.settings import SettingsResponse, UpdateSettingsRequest
from ingestor.service_locator import get_dispatch_loop, get_settings_store
from ingestor.settings import SettingsStore

router = APIRouter(prefix="/config", tags=["Config"])


def _require_settings_store() -> SettingsStore:
    settings_store = get_settings_store()
    if settings_store is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Settings are not initialized")
    return settings_store


@router.get("", response_model=SettingsResponse)
async def get_settings():
    """
    Return the settings snapshot the next tick will use.
    """
    return SettingsResponse(**_require_settings_store().current().model_dump())


@router.put("", response_model=SettingsResponse)
async def update_settings(request: UpdateSettingsRequest):
    """
    Change pipeline settings without restarting.

    Omitted fields keep their current value. The dispatch loop is woken so
    the new snapshot applies on the very next tick.

    Raises:
        - 400: Resulting settings are invalid
    """
    settings = _require_settings_store().update(request.model_dump(exclude_unset=True, exclude_none=True))

    loop = get_dispatch_loop()
    if loop is not None:
        loop.wake()

    return SettingsResponse(**settings.model_dump())
