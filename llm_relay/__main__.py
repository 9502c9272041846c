import logging

import uvicorn
from pydantic import ValidationError

from llm_relay.api.main import create_app
from llm_relay.core.config import get_settings
from llm_relay.core.logging import setup_logging

log = logging.getLogger("llm_relay")


def main() -> None:
    setup_logging()
    try:
        settings = get_settings()
    except ValidationError as e:
        log.error("[STARTUP] invalid configuration, OPENAI_API_KEY must be set in the environment or .env: %s", e)
        raise SystemExit(1)

    setup_logging(settings.LOG_LEVEL)

    app = create_app(settings)
    log.info("[STARTUP] server listening on port %d", settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, reload=False)


if __name__ == "__main__":
    main()
