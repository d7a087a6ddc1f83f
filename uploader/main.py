"""robyn-stream-uploader - bounded-memory file upload/download server powered by Robyn."""

from robyn import Robyn

from uploader.api.health import router as health_router
from uploader.api.transfers import router as transfers_router
from uploader.core.lifespan import create_lifespan
from uploader.core.logger import LogIcon, logger
from uploader.core.settings import settings as st
from uploader.events.transfer import AdmissionEvent, TransferConfigEvent
from uploader.middlewares.base import MiddlewareHandler
from uploader.middlewares.files import FileUploadOpenAPIMiddleware

app = Robyn(__file__)

# Lifespan events
lifespan = create_lifespan(app)
lifespan.register(TransferConfigEvent).register(AdmissionEvent)

app.startup_handler(lifespan.startup)
app.shutdown_handler(lifespan.shutdown)

# Routers
app.include_router(health_router)
app.include_router(transfers_router)

# Middlewares
middlewares = MiddlewareHandler(app)
middlewares.register(FileUploadOpenAPIMiddleware())


def main() -> None:
    logger.info(f"Starting {st.API_NAME}", icon=LogIcon.START, host=st.API_HOST, port=st.API_PORT)
    logger.info(f"Open a browser at: {st.api_url}/upload", icon=LogIcon.UPLOAD)
    app.start(host=st.API_HOST, port=st.API_PORT)


if __name__ == "__main__":
    main()
