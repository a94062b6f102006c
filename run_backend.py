#!/usr/bin/env python3
"""Start the Mirror Configurator API server."""

import uvicorn

from configurator.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "configurator.api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=True,
        reload_dirs=["configurator"],
    )
