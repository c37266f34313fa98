from fastapi import APIRouter, Depends

from shiprates.dependencies import get_config_store
from shiprates.schemas.config import RateConfigUpdate
from shiprates.services.config_store import RateConfigStore

router = APIRouter(prefix="/config", tags=["config"])


@router.get("")
async def read_config(store: RateConfigStore = Depends(get_config_store)):
    """Current rate configuration"""
    return store.snapshot().model_dump(by_alias=True)


@router.post("")
async def update_config(
    changes: RateConfigUpdate,
    store: RateConfigStore = Depends(get_config_store),
):
    """Apply a partial update (threshold, fee, labels, description, kill switch)"""
    config = store.update(changes)
    return {"success": True, "config": config.model_dump(by_alias=True)}
