"""Settings store endpoints."""

from typing import Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from gitty.api.dependencies import get_settings_store
from gitty.core.settings_store import SettingsStore

router = APIRouter(prefix="/settings")


class SettingUpdate(BaseModel):
    key: str
    value: str = ""


@router.get("")
def get_all_settings(store: SettingsStore = Depends(get_settings_store)) -> Dict[str, str]:
    return store.get_all()


@router.post("")
def update_setting(
    update: SettingUpdate, store: SettingsStore = Depends(get_settings_store)
) -> Dict[str, object]:
    store.set(update.key, update.value)
    return {"success": True, "key": update.key, "value": update.value}
