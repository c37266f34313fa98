"""Process-wide holder of the current rate configuration."""

import logging
import threading

from shiprates.core.config import Settings
from shiprates.schemas.config import RateConfig, RateConfigUpdate, RateLabels

logger = logging.getLogger(__name__)


def config_from_settings(settings: Settings) -> RateConfig:
    return RateConfig(
        threshold=settings.RATE_THRESHOLD,
        fee_under_threshold=settings.RATE_FEE_UNDER_THRESHOLD,
        labels=RateLabels(rts=settings.RATE_LABEL_RTS, po=settings.RATE_LABEL_PO),
        description=settings.RATE_DESCRIPTION,
        currency=settings.RATE_CURRENCY,
        kill_switch=settings.RATE_KILL_SWITCH,
    )


class RateConfigStore:
    """
    Holds an immutable ``RateConfig`` snapshot.

    Readers get a consistent snapshot; updates build a new snapshot and swap
    it in under a lock. Concurrent updates are last-writer-wins.
    """

    def __init__(self, initial: RateConfig):
        self._lock = threading.Lock()
        self._current = initial

    def snapshot(self) -> RateConfig:
        return self._current

    def replace(self, config: RateConfig) -> RateConfig:
        with self._lock:
            self._current = config
        logger.info(f"Rate config replaced: {config.model_dump(by_alias=True)}")
        return config

    def update(self, changes: RateConfigUpdate) -> RateConfig:
        """Apply the fields present in ``changes``; labels merge per key"""
        provided = changes.model_dump(exclude_unset=True, exclude_none=True)
        with self._lock:
            merged = self._current.model_dump()
            labels = provided.pop("labels", None)
            if labels:
                merged["labels"] = {**merged["labels"], **labels}
            merged.update(provided)
            self._current = RateConfig.model_validate(merged)
            updated = self._current
        logger.info(f"Rate config updated: {updated.model_dump(by_alias=True)}")
        return updated
