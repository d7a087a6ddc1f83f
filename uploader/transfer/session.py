"""Upload session orchestration over the parts of one multipart request."""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from uploader.core.logger import LogIcon, logger
from uploader.transfer import verifier
from uploader.transfer.buffer import TransferBuffer
from uploader.transfer.config import TransferConfig
from uploader.transfer.drain import drain
from uploader.transfer.errors import AuthorizationError, TransferError
from uploader.transfer.multipart import Part
from uploader.transfer.paths import resolve_object_path
from uploader.transfer.stats import Throughput, TransferStats


class SessionState(StrEnum):
    """Orchestrator states for one upload request."""

    AWAITING_PART = "awaiting_part"
    CONTROL_FIELD = "control_field"
    FILE_FIELD = "file_field"
    DONE = "done"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class SessionReport:
    """Outcome of a completed upload session."""

    files: tuple[str, ...]
    stats: TransferStats
    throughput: Throughput


class UploadSession:
    """Drive one upload request from its first part to DONE or REJECTED.

    Parts are handled strictly in order: the token part raises the
    ``authorized`` flag, file parts are drained only once it is raised, and
    any other part is skipped unread. The first failure rejects the session
    and propagates; nothing is retried.
    """

    def __init__(self, config: TransferConfig) -> None:
        self.config = config
        self.authorized = False
        self.state = SessionState.AWAITING_PART
        self.stats = TransferStats()
        self.files: list[str] = []
        self.started_ns = Throughput.now()

    def run(self, parts: Iterable[Part]) -> SessionReport:
        logger.info("Handling an upload post", icon=LogIcon.UPLOAD)
        try:
            for part in parts:
                self.handle_part(part)
                self.state = SessionState.AWAITING_PART
        except TransferError as ex:
            self.state = SessionState.REJECTED
            logger.error(
                "Upload session rejected",
                icon=LogIcon.FORBIDDEN if isinstance(ex, AuthorizationError) else LogIcon.ERROR,
                reason=ex.message,
            )
            raise

        self.state = SessionState.DONE
        throughput = Throughput.measure(self.started_ns, self.stats)
        logger.info("Upload complete", icon=LogIcon.LATENCY, files=len(self.files), **throughput.as_dict())
        return SessionReport(files=tuple(self.files), stats=self.stats, throughput=throughput)

    def handle_part(self, part: Part) -> None:
        if part.field_name == self.config.token_field:
            self.state = SessionState.CONTROL_FIELD
            self._check_token(part)
        elif part.is_file:
            self.state = SessionState.FILE_FIELD
            self._drain_file(part)

    def _check_token(self, part: Part) -> None:
        buffer = TransferBuffer(self.config.buffer_size)
        if verifier.verify(part, self.config.token, buffer):
            self.authorized = True
            logger.info("Upload token accepted", icon=LogIcon.AUTH)
        else:
            logger.warning("Upload token rejected", icon=LogIcon.AUTH)

    def _drain_file(self, part: Part) -> None:
        if not self.authorized:
            raise AuthorizationError()

        logger.info("Read part", icon=LogIcon.FILE, file_name=part.file_name)
        destination = resolve_object_path(self.config.root, part.file_name)
        self.stats += drain(
            part,
            destination,
            buffer_size=self.config.buffer_size,
            cipher=self.config.cipher,
        )
        self.files.append(part.file_name)
