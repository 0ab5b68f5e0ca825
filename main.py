from __future__ import annotations

import uvicorn

from hbmon.app import create_app
from hbmon.logging_config import configure_logging
from hbmon.settings import settings

configure_logging(settings.log_level)

app = create_app(settings)


if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
