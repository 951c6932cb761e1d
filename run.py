#!/usr/bin/env python3
"""
Run script for the Sales Coach Backend
"""
import uvicorn

from salescoach.config.settings import settings
from salescoach.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port)
