"""
Garage profile routes: /api/settings/garage

The profile is a singleton printed on every invoice header. Saving
requires every field; the store itself accepts whatever it is given.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from garage.api.deps import get_state, require_user
from garage.core.errors import FormValidationError
from garage.models.domain import GarageProfile
from garage.store.state import AppState

settings_router = APIRouter(
    prefix="/api/settings", tags=["settings"], dependencies=[Depends(require_user)]
)


def _require_complete(profile: GarageProfile) -> None:
    missing = {
        name: "This field is required"
        for name, value in profile.model_dump().items()
        if not str(value or "").strip()
    }
    if missing:
        raise FormValidationError(missing)


@settings_router.get("/garage", response_model=GarageProfile)
def get_garage_profile(state: AppState = Depends(get_state)):
    if state.garage_profile is None:
        raise HTTPException(status_code=404, detail="Garage profile has not been saved yet")
    return state.garage_profile


@settings_router.put("/garage", response_model=GarageProfile)
def save_garage_profile(body: GarageProfile, state: AppState = Depends(get_state)):
    _require_complete(body)
    return state.update_garage_profile(body)
