#!/usr/bin/env python3
"""
Run script for the Levant VA flight operations backend
"""
import uvicorn

from flightops.config.settings import settings

if __name__ == "__main__":
    uvicorn.run(
        "flightops.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
