"""Lifespan events that prepare the transfer core."""

from pathlib import Path

from uploader.core.lifespan import BaseEvent
from uploader.core.logger import LogIcon, logger
from uploader.core.settings import settings as st
from uploader.transfer.admission import AdmissionGate, build_admission
from uploader.transfer.config import TransferConfig


def ensure_root(root: Path) -> Path:
    """Create the storage root if needed, readable only by the service user."""
    root.mkdir(mode=0o700, parents=True, exist_ok=True)
    return root


class TransferConfigEvent(BaseEvent[TransferConfig]):
    """Builds the TransferConfig and makes sure its storage root exists."""

    name = "transfer"

    async def startup(self) -> TransferConfig:
        config = st.transfer_config()
        ensure_root(config.root)
        logger.info(
            "Storage ready",
            icon=LogIcon.STORAGE,
            root=str(config.root),
            buffer_size=config.buffer_size,
            cipher=config.cipher is not None,
        )
        if config.cipher is not None:
            logger.warning("Cipher uses one static key for every object", icon=LogIcon.SECURITY)
        return config


class AdmissionEvent(BaseEvent[AdmissionGate]):
    name = "admission"

    async def startup(self) -> AdmissionGate:
        return build_admission(st.MAX_SESSIONS)
